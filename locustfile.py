"""
Load and abuse test for the settlement endpoint.

Each simulated player provisions an account, then settles small crash
rounds and occasionally fires the same claim twice in a row to exercise
the per-account throttle. Run against a server sharing this SECRET_KEY:

    locust -f locustfile.py --host http://127.0.0.1:8000
"""

import uuid

from locust import HttpUser, between, task

from wagerhub.config import settings
from wagerhub.core.identity import SignedTokenIdentityProvider

provider = SignedTokenIdentityProvider.from_settings(settings.security)

CRASH_WIN = {
    "gameType": "crash",
    "betAmount": 1.0,
    "multiplier": 1.5,
    "winAmount": 1.5,
    "profit": 0.5,
    "isWin": True,
    "gameData": {"crashedAt": 1.5},
}


class SettlingPlayer(HttpUser):
    wait_time = between(1, 2)

    def on_start(self):
        subject = f"locust-{uuid.uuid4().hex[:12]}"
        token = provider.issue(subject, email=f"{subject}@example.com", name=subject)
        self.headers = {"Authorization": f"Bearer {token}"}

        response = self.client.post("/api/user", json={}, headers=self.headers)
        if response.status_code != 200:
            print(f"Provisioning failed with {response.status_code}: {response.text}")
            self.environment.runner.quit()

    @task(5)
    def settle_round(self):
        with self.client.post(
            "/api/game/result", json=CRASH_WIN, headers=self.headers, catch_response=True
        ) as response:
            # Throttled submissions are expected under load
            if response.status_code in (200, 429):
                response.success()
            else:
                response.failure(f"Unexpected status {response.status_code}")

    @task(1)
    def double_submit(self):
        statuses = []
        for _ in range(2):
            with self.client.post(
                "/api/game/result",
                json=CRASH_WIN,
                headers=self.headers,
                catch_response=True,
                name="/api/game/result [double]",
            ) as response:
                statuses.append(response.status_code)
                response.success()
        if statuses.count(200) > 1 and settings.rate_limit.settle_min_interval_seconds >= 1:
            print(f"Double submit settled twice: {statuses}")

    @task(2)
    def read_history(self):
        self.client.get("/api/game/history?limit=10", headers=self.headers)
