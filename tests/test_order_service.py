from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from supermarket.data.models.order import OrderModel
from supermarket.data.models.order_item import OrderItemModel
from supermarket.domain.errors import NotFoundError, PersistenceError
from supermarket.repos.order_repo import OrderRepo
from supermarket.services.cart_service import Actor
from supermarket.services.order_service import OrderService
from tests.helpers import DatabaseTestCase, db_down


class OrderServiceTests(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.svc = OrderService(self.db)

    def make_order(self, number="ORD-1-AAAAAA", user_id=None, email=None, phone=None, age_days=0, paid=False):
        order = OrderModel(
            order_number=number,
            user_id=user_id,
            subtotal=Decimal("5.00"),
            delivery_fee=Decimal("1.00"),
            total=Decimal("6.00"),
            delivery_method="standard",
            payment_method="paynow",
            customer_email=email,
            customer_phone=phone,
            paid=paid,
            created_at=datetime.now(timezone.utc) - timedelta(days=age_days),
        )
        order.items = [OrderItemModel(product_id=1, name="Milk", price=Decimal("2.50"), quantity=2, subtotal=Decimal("5.00"))]
        self.db.add(order)
        self.db.commit()
        return order

    def test_confirm_payment_is_idempotent(self):
        self.make_order()

        first = self.svc.confirm_payment("ORD-1-AAAAAA", "REF-1")
        second = self.svc.confirm_payment("ORD-1-AAAAAA", "REF-2")

        self.assertTrue(first["paid"])
        self.assertTrue(second["paid"])
        self.assertEqual(second["payment_reference"], "REF-1")
        self.assertTrue(OrderRepo(self.db).get_by_number("ORD-1-AAAAAA").paid)

    def test_confirm_unknown_order(self):
        with self.assertRaises(NotFoundError):
            self.svc.confirm_payment("ORD-404")

    def test_confirm_payment_database_failure(self):
        self.make_order()

        with patch.object(OrderRepo, "mark_paid", side_effect=db_down()):
            with self.assertRaises(PersistenceError):
                self.svc.confirm_payment("ORD-1-AAAAAA")

    def test_receipt_visible_to_session_owner_and_admin_only(self):
        user = self.make_user()
        self.make_order(user_id=user.id)

        in_session = {"last_order": {"order_number": "ORD-1-AAAAAA", "saved": True}}
        receipt = self.svc.get_receipt("ORD-1-AAAAAA", Actor(cart={}), in_session)
        self.assertEqual(receipt["total"], "6.00")
        self.assertEqual(receipt["items"][0]["quantity"], 2)

        owner = Actor(cart={}, user_id=user.id)
        self.assertEqual(self.svc.get_receipt("ORD-1-AAAAAA", owner, {})["order_number"], "ORD-1-AAAAAA")

        admin = Actor(cart={}, user_id=999, role="admin")
        self.assertTrue(self.svc.get_receipt("ORD-1-AAAAAA", admin, {})["saved"])

        for stranger in (Actor(cart={}), Actor(cart={}, user_id=user.id + 1)):
            with self.assertRaises(NotFoundError) as ctx:
                self.svc.get_receipt("ORD-1-AAAAAA", stranger, {})
            self.assertEqual(ctx.exception.code, "order_not_found")

    def test_unsaved_receipt_comes_from_session(self):
        last = {"order_number": "ORD-9-CCCCCC", "saved": False, "total": "3.00"}

        receipt = self.svc.get_receipt("ORD-9-CCCCCC", Actor(cart={}), {"last_order": last})

        self.assertEqual(receipt, last)
        with self.assertRaises(NotFoundError):
            self.svc.get_receipt("ORD-9-CCCCCC", Actor(cart={}), {})

    def test_recent_guest_orders_are_claimed_by_contact(self):
        user = self.make_user(email="a@x.com", contact="91234567")
        self.make_order("ORD-1-RECENT", email="A@X.com", age_days=2)
        self.make_order("ORD-2-OLD", email="a@x.com", age_days=40)
        self.make_order("ORD-3-PHONE", phone="91234567", age_days=1)
        self.make_order("ORD-4-OTHER", email="b@x.com", age_days=1)

        claimed = self.svc.claim_guest_orders(user.id, "a@x.com", "91234567")

        self.assertEqual(claimed, 2)
        numbers = sorted(o["order_number"] for o in self.svc.list_orders(user.id))
        self.assertEqual(numbers, ["ORD-1-RECENT", "ORD-3-PHONE"])

    def test_claim_never_steals_owned_orders(self):
        owner = self.make_user(email="owner@x.com")
        other = self.make_user(email="other@x.com", contact="98765432")
        self.make_order(user_id=owner.id, email="other@x.com")

        self.assertEqual(self.svc.claim_guest_orders(other.id, "other@x.com", None), 0)

    def test_claim_failure_is_swallowed(self):
        with patch.object(OrderRepo, "claim_guest_orders", side_effect=db_down()):
            self.assertEqual(self.svc.claim_guest_orders(1, "a@x.com", None), 0)
