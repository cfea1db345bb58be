from rest_framework.throttling import SimpleRateThrottle


class ClientIPRateThrottle(SimpleRateThrottle):
    """
    Fixed per-IP request budget shared by every API view.

    Rates accept a multiplier on the period, e.g. ``100/15m`` for one
    hundred requests every fifteen minutes. Windows are aligned to the
    period, so a client's budget resets at each window boundary.
    """
    scope = 'client_ip'

    PERIODS = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)
        num, period = rate.split('/')
        multiplier = ''.join(ch for ch in period if ch.isdigit()) or '1'
        unit = ''.join(ch for ch in period if ch.isalpha())[:1]
        return (int(num), int(multiplier) * self.PERIODS[unit])

    def get_cache_key(self, request, view):
        return self.cache_format % {
            'scope': self.scope,
            'ident': self.get_ident(request),
        }

    def allow_request(self, request, view):
        if self.rate is None:
            return True

        key = self.get_cache_key(request, view)
        if key is None:
            return True

        self.now = self.timer()
        window = int(self.now // self.duration)
        self.window_ends_at = (window + 1) * self.duration
        self.key = f'{key}:{window}'

        self.cache.add(self.key, 0, self.duration)
        if self.cache.incr(self.key) > self.num_requests:
            return self.throttle_failure()
        return True

    def wait(self):
        return max(self.window_ends_at - self.now, 0)
