from decimal import Decimal

from fastapi.testclient import TestClient

from supermarket.main import app
from tests.helpers import DatabaseTestCase


class ApiTestCase(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.make_product(product_id=1, name="Milk", price="3.20", quantity=5)
        self.make_product(product_id=7, name="Apples", price="2.50", quantity=10)
        self.make_product(product_id=9, name="Sold out", price="1.00", quantity=0)
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        super().tearDown()

    def checkout_payload(self, **overrides):
        data = {
            "delivery_method": "standard",
            "delivery_fee": "1.00",
            "payment_method": "paynow",
            "shipping_phone": "9123 4567",
            "shipping_name": "Alice",
        }
        data.update(overrides)
        return data

    def login(self, email, password="secret123", client=None):
        resp = (client or self.client).post("/users/login", json={"email": email, "password": password})
        self.assertEqual(resp.status_code, 200, resp.text)
        return resp.json()


class CartApiTests(ApiTestCase):
    def test_add_and_read_cart(self):
        resp = self.client.post("/cart/items/1")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["success"])
        self.assertEqual(resp.json()["item"]["quantity"], 1)

        self.client.post("/cart/items/1", json={"quantity": 2})
        cart = self.client.get("/cart/").json()

        self.assertEqual(cart["count"], 3)
        self.assertEqual(Decimal(cart["total"]), Decimal("9.60"))
        self.assertEqual(cart["items"][0]["category"], "Dairy")

    def test_invalid_input_is_rejected_with_error_code(self):
        resp = self.client.post("/cart/items/abc")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "invalid_id")

        for raw in ("%C2%B2", "%D9%A4%D9%A2"):
            resp = self.client.post(f"/cart/items/{raw}")
            self.assertEqual(resp.status_code, 400)
            self.assertEqual(resp.json()["error"], "invalid_id")

        resp = self.client.put("/cart/items/1", json={"quantity": "abc"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "invalid_quantity")

        resp = self.client.post("/cart/items/9")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "out_of_stock")

        resp = self.client.post("/cart/items/404")
        self.assertEqual(resp.status_code, 404)

        self.assertEqual(self.client.get("/cart/").json()["count"], 0)

    def test_update_increase_decrease_remove(self):
        self.client.put("/cart/items/7", json={"quantity": 4, "selected": False})
        resp = self.client.post("/cart/items/7/decrease")

        item = resp.json()["item"]
        self.assertEqual(item["quantity"], 3)
        self.assertFalse(item["selected"])
        self.assertEqual(Decimal(resp.json()["cart"]["selected_total"]), Decimal("0"))

        resp = self.client.post("/cart/items/7/increase")
        self.assertEqual(resp.json()["item"]["quantity"], 4)
        self.assertTrue(resp.json()["item"]["selected"])

        resp = self.client.delete("/cart/items/7")
        self.assertEqual(resp.json()["cart"]["items"], [])

    def test_clear_cart(self):
        self.client.post("/cart/items/1")
        self.client.post("/cart/items/7")

        resp = self.client.delete("/cart/")

        self.assertEqual(resp.json()["cart"]["count"], 0)
        self.assertEqual(self.client.get("/cart/").json()["items"], [])


class CheckoutApiTests(ApiTestCase):
    def test_checkout_and_receipt_access(self):
        self.client.post("/cart/items/7", json={"quantity": 3})

        resp = self.client.post("/checkout/", json=self.checkout_payload())

        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        self.assertTrue(body["saved"])
        self.assertEqual(Decimal(body["order"]["total"]), Decimal("8.50"))
        self.assertEqual(self.stock_of(7), 7)
        self.assertEqual(self.client.get("/cart/").json()["count"], 0)

        number = body["order_number"]
        receipt = self.client.get(f"/orders/{number}")
        self.assertEqual(receipt.status_code, 200)
        self.assertEqual(receipt.json()["items"][0]["quantity"], 3)

        with TestClient(app) as stranger:
            resp = stranger.get(f"/orders/{number}")
            self.assertEqual(resp.status_code, 404)
            self.assertEqual(resp.json()["error"], "order_not_found")

    def test_failed_checkout_remembers_form(self):
        self.client.post("/cart/items/7")

        resp = self.client.post("/checkout/", json=self.checkout_payload(shipping_phone="12"))
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "invalid_phone")

        form = self.client.get("/checkout/").json()
        self.assertEqual(form["form"]["shipping_phone"], "12")
        self.assertEqual(form["cart"]["count"], 1)
        self.assertIn("paypal", form["payment_methods"])

    def test_empty_cart_checkout(self):
        resp = self.client.post("/checkout/", json=self.checkout_payload())

        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "cart_empty")

    def test_gateway_checkout_without_capture_is_refused(self):
        self.client.post("/cart/items/7")

        resp = self.client.post("/checkout/", json=self.checkout_payload(payment_method="paypal"))

        self.assertEqual(resp.status_code, 402)
        self.assertEqual(self.stock_of(7), 10)

    def test_confirm_payment_is_idempotent(self):
        self.client.post("/cart/items/7")
        number = self.client.post("/checkout/", json=self.checkout_payload()).json()["order_number"]

        first = self.client.post(f"/orders/{number}/confirm-payment", json={"reference": "REF-1"})
        second = self.client.post(f"/orders/{number}/confirm-payment", json={"reference": "REF-2"})

        self.assertEqual(first.status_code, 200)
        self.assertTrue(second.json()["paid"])
        self.assertEqual(second.json()["payment_reference"], "REF-1")

        with TestClient(app) as stranger:
            self.assertEqual(stranger.post(f"/orders/{number}/confirm-payment").status_code, 404)


class AccountApiTests(ApiTestCase):
    def register(self, email="alice@gmail.com"):
        resp = self.client.post("/users/register", json={
            "username": "alice",
            "email": email,
            "password": "secret123",
            "address": "1 Orchard Road",
            "contact": "9123 4567",
        })
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()

    def test_register_rejects_duplicate_email_and_bad_contact(self):
        self.register()

        resp = self.client.post("/users/register", json={
            "username": "alice2", "email": "ALICE@gmail.com", "password": "secret123",
            "address": "x", "contact": "91234567",
        })
        self.assertEqual(resp.json()["error"], "email_taken")

        resp = self.client.post("/users/register", json={
            "username": "bob", "email": "bob@gmail.com", "password": "secret123",
            "address": "x", "contact": "123",
        })
        self.assertEqual(resp.json()["error"], "invalid_phone")

    def test_login_merges_and_logout_persists_cart(self):
        self.register()
        self.client.post("/cart/items/1", json={"quantity": 2})

        body = self.login("alice@gmail.com")
        self.assertEqual(body["user"]["role"], "user")
        self.assertEqual(body["cart"]["count"], 2)

        self.client.post("/cart/items/7")
        self.assertEqual(self.client.post("/users/logout").json(), {"success": True})
        self.assertEqual(self.client.get("/cart/").json()["count"], 0)

        body = self.login("alice@gmail.com")
        self.assertEqual(body["cart"]["count"], 3)
        self.assertEqual(self.client.get("/users/me").json()["email"], "alice@gmail.com")

    def test_wrong_password(self):
        self.register()

        resp = self.client.post("/users/login", json={"email": "alice@gmail.com", "password": "nope"})

        self.assertEqual(resp.status_code, 401)

    def test_guest_orders_are_claimed_on_login(self):
        self.client.post("/cart/items/7")
        self.client.post("/checkout/", json=self.checkout_payload())
        self.register()

        self.assertEqual(self.client.get("/orders/").status_code, 401)

        self.login("alice@gmail.com")
        orders = self.client.get("/orders/").json()

        self.assertEqual(len(orders), 1)
        self.assertEqual(orders[0]["customer_phone"], "91234567")

    def test_replenish_requires_admin(self):
        self.make_user(email="admin@gmail.com", role="admin")
        self.make_user(email="shopper@gmail.com")

        self.assertEqual(self.client.post("/products/7/replenish", json={"quantity": 5}).status_code, 401)

        self.login("shopper@gmail.com")
        self.assertEqual(self.client.post("/products/7/replenish", json={"quantity": 5}).status_code, 403)
        self.client.post("/users/logout")

        self.login("admin@gmail.com")
        resp = self.client.post("/products/7/replenish", json={"quantity": 5})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["quantity"], 15)


class CatalogApiTests(ApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/health").json()["status"], "ok")

    def test_products_listing_and_lookup(self):
        names = [p["name"] for p in self.client.get("/products/", params={"search": "app"}).json()]
        self.assertEqual(names, ["Apples"])

        ids = [p["id"] for p in self.client.get("/products/").json()]
        self.assertEqual(ids, [1, 7, 9])

        self.assertEqual(self.client.get("/products/1").json()["name"], "Milk")
        self.assertEqual(self.client.get("/products/404").status_code, 404)
        self.assertEqual(self.client.get("/products/x1").json()["error"], "invalid_id")
