"""
Smoke Test for the Project Dashboard API - Owner Isolation

Tests:
1. Sign up / sign in two actors (A and B) through the local identity routes
2. Unauthenticated GET /projects is 401, never 500
3. Create a project as A; update progress and check untouched fields
4. Verify B cannot see A's project and gets 404 updating it
5. Delete A's project and verify it is gone

Run: python smoke_test_api.py [BASE_URL]

Requirements:
- Backend running (default http://localhost:8000) with the local identity
  service (SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY unset)
"""

import sys
from typing import Dict, Optional

import requests

BASE_URL = sys.argv[1].rstrip("/") if len(sys.argv) > 1 else "http://localhost:8000"


class TestResult:
    def __init__(self):
        self.passed = 0
        self.failed = 0

    def check(self, ok: bool, name: str, detail: str = ""):
        if ok:
            self.passed += 1
            print(f"✅ PASS: {name}")
        else:
            self.failed += 1
            print(f"❌ FAIL: {name}")
        if detail:
            print(f"  └─ {detail}")

    def summary(self):
        print("\n" + "=" * 60)
        print(f"SMOKE TEST SUMMARY: {self.passed} passed, {self.failed} failed")
        print("=" * 60)
        return self.failed == 0


def sign_up_and_in(email: str, password: str, name: str) -> Optional[Dict[str, str]]:
    """Create the account if needed, sign in, return auth headers"""
    requests.post(
        f"{BASE_URL}/signup",
        json={"email": email, "password": password, "name": name},
        timeout=10,
    )
    resp = requests.post(
        f"{BASE_URL}/auth/v1/token",
        params={"grant_type": "password"},
        json={"email": email, "password": password},
        timeout=10,
    )
    if resp.status_code != 200:
        print(f"  └─ sign in failed for {email}: HTTP {resp.status_code}")
        return None
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def main():
    result = TestResult()

    print("=" * 60)
    print(f"SMOKE TEST: Project Dashboard API at {BASE_URL}")
    print("=" * 60)

    resp = requests.get(f"{BASE_URL}/health", timeout=10)
    result.check(resp.status_code == 200 and resp.json().get("status") == "healthy", "Health")

    resp = requests.get(f"{BASE_URL}/projects", timeout=10)
    result.check(resp.status_code == 401 and "error" in resp.json(), "Unauthenticated list is 401", f"HTTP {resp.status_code}")

    headers_a = sign_up_and_in("smoke_a@example.com", "secret1", "Smoke A")
    headers_b = sign_up_and_in("smoke_b@example.com", "secret1", "Smoke B")
    if not headers_a or not headers_b:
        result.check(False, "Setup", "Could not sign in test actors")
        result.summary()
        return 1

    resp = requests.post(
        f"{BASE_URL}/projects",
        json={"name": "Smoke X", "status": "Planning", "priority": "Low", "dueDate": "2099-01-01"},
        headers=headers_a,
        timeout=10,
    )
    result.check(resp.status_code == 200, "Create project", f"HTTP {resp.status_code}")
    if resp.status_code != 200:
        result.summary()
        return 1
    project = resp.json()["project"]
    result.check(project["progress"] == 0, "New project starts at 0% progress")

    resp = requests.put(f"{BASE_URL}/projects/{project['id']}", json={"progress": 50}, headers=headers_a, timeout=10)
    updated = resp.json().get("project", {})
    result.check(
        updated.get("progress") == 50 and updated.get("status") == "Planning",
        "Partial update keeps other fields",
    )

    resp = requests.get(f"{BASE_URL}/projects", headers=headers_b, timeout=10)
    ids_b = [p["id"] for p in resp.json().get("projects", [])]
    result.check(project["id"] not in ids_b, "Owner isolation - list")

    resp = requests.put(f"{BASE_URL}/projects/{project['id']}", json={"name": "Stolen"}, headers=headers_b, timeout=10)
    result.check(resp.status_code == 404, "Owner isolation - update", f"HTTP {resp.status_code}")

    requests.delete(f"{BASE_URL}/projects/{project['id']}", headers=headers_a, timeout=10)
    resp = requests.get(f"{BASE_URL}/projects", headers=headers_a, timeout=10)
    ids_a = [p["id"] for p in resp.json().get("projects", [])]
    result.check(project["id"] not in ids_a, "Delete removes the project")

    return 0 if result.summary() else 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nTest interrupted by user")
        sys.exit(1)
    except requests.RequestException as e:
        print(f"\n\n❌ ERROR: could not reach {BASE_URL}: {type(e).__name__}")
        sys.exit(1)
