"""
Django management command to load demo data for the marketplace.
Creates demo accounts for every role, stores, categories and products.
"""

from django.core.management.base import BaseCommand
from django.db import transaction
from decimal import Decimal


CATEGORIES = [
    ('fruits-vegetables', 'Fruits & Vegetables'),
    ('dairy-bakery', 'Dairy & Bakery'),
    ('pantry-staples', 'Pantry Staples'),
    ('beverages', 'Beverages'),
    ('snacks', 'Snacks'),
    ('household', 'Household'),
]

STORES = [
    {
        'name': 'Fresh Basket Saheed Nagar',
        'category': 'grocery',
        'phone': '9437000001',
        'address': {'street': 'Plot 12, Saheed Nagar', 'city': 'Bhubaneswar', 'state': 'Odisha', 'pincode': '751007'},
        'coordinates': {'lat': 20.2961, 'lng': 85.8245},
        'delivery_fee': Decimal('20.00'),
        'minimum_order_amount': Decimal('99.00'),
    },
    {
        'name': 'Patia Daily Needs',
        'category': 'convenience',
        'phone': '9437000002',
        'address': {'street': 'KIIT Road, Patia', 'city': 'Bhubaneswar', 'state': 'Odisha', 'pincode': '751024'},
        'coordinates': {'lat': 20.3538, 'lng': 85.8192},
        'delivery_fee': Decimal('15.00'),
        'minimum_order_amount': Decimal('49.00'),
    },
]

PRODUCTS = [
    # (name, category, unit, price, stock)
    ('Tomato', 'fruits-vegetables', 'kg', '40.00', 120),
    ('Onion', 'fruits-vegetables', 'kg', '35.00', 200),
    ('Banana', 'fruits-vegetables', 'dozen', '60.00', 80),
    ('Toned Milk 500ml', 'dairy-bakery', 'pack', '27.00', 150),
    ('Whole Wheat Bread', 'dairy-bakery', 'piece', '45.00', 40),
    ('Basmati Rice 1kg', 'pantry-staples', 'pack', '130.00', 60),
    ('Toor Dal 1kg', 'pantry-staples', 'pack', '160.00', 50),
    ('Mango Juice 1L', 'beverages', 'l', '99.00', 30),
    ('Potato Chips', 'snacks', 'pack', '20.00', 100),
    ('Dishwash Liquid', 'household', 'ml', '110.00', 3),
]


class Command(BaseCommand):
    help = 'Load demo data for the marketplace (accounts, stores, products)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing catalogue data before loading demo data',
        )
        parser.add_argument(
            '--password',
            type=str,
            default='Demo1234@',
            help='Password for every demo account (default: Demo1234@)',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        from users.models import User
        from stores.models import Store
        from inventory.models import Category, Product
        from stock.services import add_stock

        password = options['password']

        if options['clear']:
            self.stdout.write(self.style.WARNING('Clearing existing catalogue data...'))
            Product.objects.all().delete()
            Category.objects.all().delete()

        self.stdout.write(self.style.NOTICE('Loading demo data...'))

        # =================================================================
        # Demo Accounts
        # =================================================================
        accounts = {}
        for role, label, phone in [
            (User.Role.ADMIN, 'Admin', '9000000001'),
            (User.Role.STORE_OWNER, 'Store Owner', '9000000002'),
            (User.Role.DELIVERY_PARTNER, 'Delivery Partner', '9000000003'),
            (User.Role.CUSTOMER, 'Customer', '9000000004'),
        ]:
            email = f'{role}@demo.local'
            user, created = User.objects.get_or_create(
                email=email,
                defaults={
                    'name': f'Demo {label}',
                    'phone': phone,
                    'role': role,
                    'is_verified': True,
                    'is_staff': role == User.Role.ADMIN,
                }
            )
            user.set_password(password)
            user.save()
            accounts[role] = user
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created {label.lower()}: {email} / {password}'))
            else:
                self.stdout.write(f'{label} already exists, password updated: {email}')

        customer = accounts[User.Role.CUSTOMER]
        customer.address = {
            'street': 'Unit 4, Nayapalli',
            'city': 'Bhubaneswar',
            'state': 'Odisha',
            'pincode': '751012',
            'coordinates': {'lat': 20.2899, 'lng': 85.8106},
        }
        customer.save(update_fields=['address', 'updated_at'])

        # =================================================================
        # Categories
        # =================================================================
        for sort_order, (slug, name) in enumerate(CATEGORIES):
            category, created = Category.objects.get_or_create(
                slug=slug,
                defaults={'name': name, 'sort_order': sort_order}
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created category: {category.name}'))

        # =================================================================
        # Stores and Products
        # =================================================================
        owner = accounts[User.Role.STORE_OWNER]
        products_created = 0
        for store_index, store_data in enumerate(STORES):
            store, created = Store.objects.get_or_create(
                owner=owner,
                name=store_data['name'],
                defaults={**store_data, 'is_verified': True, 'payment_methods': ['cash', 'upi', 'card']}
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f'Created store: {store.name}'))
            else:
                self.stdout.write(f'Store already exists: {store.name}')

            for product_index, (name, category, unit, price, quantity) in enumerate(PRODUCTS):
                product, created = Product.objects.get_or_create(
                    sku=f'DEMO-{store_index + 1:02d}-{product_index + 1:03d}',
                    defaults={
                        'store': store,
                        'name': name,
                        'category': category,
                        'unit': unit,
                        'price': Decimal(price),
                    }
                )
                if created:
                    add_stock(product, quantity, user=owner, notes='Opening stock')
                    products_created += 1

        self.stdout.write(self.style.SUCCESS(f'Created {products_created} products'))
        self.stdout.write(self.style.SUCCESS('Demo data loaded successfully!'))
