from locust import HttpUser, task, between
import random

MENU = ["Latte", "Scone", "Tea"]


class CafeCustomer(HttpUser):
    wait_time = between(0.1, 0.5)

    def on_start(self):
        # Register and log in a customer for this simulated client
        uname = f"user_{random.randint(1, 1_000_000)}"
        self.headers = None
        self.order_ids = []
        r = self.client.post("/users", json={"login": uname, "password": "pw"})
        if r.status_code != 201:
            return
        r = self.client.post("/auth/login", json={"login": uname, "password": "pw"})
        if r.status_code == 200:
            self.headers = {"Authorization": f"Bearer {r.json()['access_token']}"}

    @task(3)
    def place_order(self):
        if not self.headers:
            return
        items = [{"item_name": name} for name in random.sample(MENU, k=random.randint(1, len(MENU)))]
        r = self.client.post("/orders", json={"items": items}, headers=self.headers)
        if r.status_code == 201:
            self.order_ids.append(r.json()["orderid"])

    @task(2)
    def browse_menu(self):
        self.client.get("/menu", params={"type": "Drinks"})

    @task(1)
    def view_recent_orders(self):
        if not self.headers:
            return
        self.client.get("/orders", headers=self.headers)
        if self.order_ids:
            self.client.get(f"/orders/{random.choice(self.order_ids)}", headers=self.headers, name="/orders/[id]")
