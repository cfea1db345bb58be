from decimal import Decimal, ROUND_HALF_UP

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']


def default_operating_hours():
    return {day: {'open': '08:00', 'close': '22:00', 'is_open': True} for day in WEEKDAYS}


def is_open_at(operating_hours, moment) -> bool:
    """
    Whether a store with ``operating_hours`` is open at ``moment``.

    Hours are keyed by full lowercase weekday name; open and close are
    inclusive ``HH:MM`` strings in the store's local time.
    """
    hours = (operating_hours or {}).get(WEEKDAYS[moment.weekday()])
    if not hours or not hours.get('is_open', True):
        return False

    current = moment.strftime('%H:%M')
    return hours['open'] <= current <= hours['close']


def running_average(average, count, value) -> Decimal:
    total = Decimal(str(average)) * count + Decimal(str(value))
    return (total / (count + 1)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
