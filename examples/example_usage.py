"""Example: drive the admission API over HTTP with retry.

Start the server first (``python app.py`` with AUTO_SEED_DB=1), then run
``python -m examples.example_usage``.
"""

import logging
import os

from src.attendance_admission.attendance_admission.resilience.client import AdmissionClient
from src.attendance_admission.attendance_admission.resilience.retry import RetryPolicy

# Silom branch from database/seed.sql
BRANCH_ID = "2d6f0f5e-6a0e-4a43-9f1e-0b7f5f3e1a01"


def main():
    logging.basicConfig(level=logging.INFO)
    client = AdmissionClient(
        os.getenv("ADMISSION_URL", "http://127.0.0.1:5000"),
        retry_policy=RetryPolicy(max_attempts=4, base_delay_ms=500),
    )
    me = client.login("employee@example.com", "employee123")
    user_id = me["user_id"]

    nearby = client.session.get(
        f"{client.base_url}/api/location/nearby-branches",
        params={"latitude": 13.7262, "longitude": 100.5234, "radius": 1000},
        timeout=client.timeout,
    ).json()
    print("nearby:", [b["name"] for b in nearby["branches"]])

    outcome = client.check_in(BRANCH_ID, 13.7262, 100.5234, evidence_ref=f"checkin/{user_id}/selfie.jpg")
    print("check-in:", outcome.succeeded, outcome.value or outcome.error, f"attempts={outcome.attempts}")

    print("status:", client.status())

    outcome = client.check_out(evidence_ref=f"checkout/{user_id}/selfie.jpg", latitude=13.7262, longitude=100.5234)
    print("check-out:", outcome.succeeded, outcome.value or outcome.error, f"attempts={outcome.attempts}")


if __name__ == "__main__":
    main()
