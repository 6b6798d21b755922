from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.core.principal import Principal
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import InsufficientStock
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderWorkflow
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders", type=int, default=30, help="Number of orders to place."
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        admin, shoppers = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(admin, shoppers, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"shoppers={len(shoppers)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        admin = User.objects.filter(username="admin").first()
        if admin is None:
            admin = User.objects.create_superuser(
                "admin", email="admin@example.com", password="Admin#1234"
            )

        shoppers = []
        for username in ("alice", "bob", "carol"):
            user = User.objects.filter(username=username).first()
            if user is None:
                user = User.objects.create_user(
                    username,
                    email=f"{username}@example.com",
                    password=f"{username.title()}#1234",
                )
            shoppers.append(user)
        return admin, shoppers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("27\" Monitor", "Electronics", Decimal("299.90")),
            ("Mechanical Keyboard", "Electronics", Decimal("89.90")),
            ("Gaming Mouse", "Electronics", Decimal("49.90")),
            ("14\" Laptop", "Electronics", Decimal("999.00")),
            ("Headset", "Electronics", Decimal("59.90")),
            ("Office Desk", "Furniture", Decimal("249.00")),
            ("Ergonomic Chair", "Furniture", Decimal("399.00")),
            ("Bookshelf", "Furniture", Decimal("149.00")),
            ("A4 Paper", "Office", Decimal("6.90")),
            ("Notebook", "Office", Decimal("3.90")),
            ("Stapler", "Office", Decimal("9.90")),
            ("Desk Lamp", "Office", Decimal("24.90")),
        ]
        for name, category, price in catalog:
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={
                    "description": category,
                    "price": price,
                    "stock": random.randint(10, 200),
                    "is_active": True,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, admin, shoppers, products: list[Product], count: int) -> int:
        """Place orders through ``OrderWorkflow`` so stock and history stay consistent."""
        self.stdout.write("Creating orders...")
        if not shoppers or not products:
            self.stdout.write(self.style.WARNING("Skipping orders (no users/products)."))
            return 0

        workflow = OrderWorkflow(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        staff = Principal.from_user(admin)
        progressions = [
            [],
            [OrderStatus.PROCESSING],
            [OrderStatus.PROCESSING, OrderStatus.SHIPPED],
            [OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED],
        ]

        orders_created = 0
        for _ in range(count):
            principal = Principal.from_user(random.choice(shoppers))
            picked = random.sample(products, k=random.randint(1, min(4, len(products))))
            dto = CreateOrderDTO(
                items=[
                    CreateOrderItemDTO(product_id=p.id, quantity=random.randint(1, 3))
                    for p in picked
                ]
            )
            try:
                order = workflow.create_order(principal, dto)
            except InsufficientStock:
                continue
            orders_created += 1

            if random.random() < 0.15:
                workflow.cancel_order(principal, order.id, notes="Seed cancellation")
                continue
            for status in random.choice(progressions):
                workflow.update_status(staff, order.id, status)

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created
