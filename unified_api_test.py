#!/usr/bin/env python3
"""
Smoke test for a running clinic backend.

Logs in as each demo account (see ``manage.py ensure_demo_users``),
calls the endpoints that role should and should not reach, and prints
a summary. Exit status is non-zero when any check fails.

    python manage.py ensure_demo_users
    python manage.py runserver
    python unified_api_test.py
"""
import os
import sys
import time
from dataclasses import dataclass
from typing import List, Optional

import requests

BASE_URL = os.getenv("CLINIC_BASE_URL", "http://127.0.0.1:8000")
PASSWORD = os.getenv("CLINIC_DEMO_PASSWORD", "123456")

DEMO_USERS = {
    "admin": "admin1",
    "doctor": "doctor1",
    "nurse": "nurse1",
    "reception": "reception1",
    "accounts": "accounts1",
    "lab": "lab1",
}

COMMON_CASES = [
    ("GET", "/healthz", 200, "health check"),
    ("GET", "/api/auth/me", 200, "current account"),
    ("GET", "/api/home", 200, "landing page"),
]

ROLE_CASES = {
    "admin": [
        ("GET", "/api/users", 200, "list users"),
        ("GET", "/api/doctors", 200, "doctor directory"),
        ("GET", "/api/patients", 200, "patient registry"),
        ("GET", "/api/appointments", 200, "all appointments"),
        ("GET", "/api/transactions", 200, "transactions"),
        ("GET", "/api/lab/tests", 200, "lab tests"),
        ("GET", "/api/nursing/dashboard", 200, "nursing dashboard"),
    ],
    "doctor": [
        ("GET", "/api/doctor/dashboard", 200, "doctor dashboard"),
        ("GET", "/api/doctor/profile", 200, "own profile"),
        ("GET", "/api/doctor/appointments", 200, "own appointments"),
        ("GET", "/api/doctor/patients", 200, "own patients"),
        ("GET", "/api/lab/tests", 200, "lab tests of own patients"),
        ("GET", "/api/nursing/dashboard", 403, "nursing is off limits"),
        ("GET", "/api/users", 403, "user admin is off limits"),
    ],
    "nurse": [
        ("GET", "/api/nursing/dashboard", 200, "nursing dashboard"),
        ("GET", "/api/nursing/notes", 200, "own notes"),
        ("GET", "/api/nursing/vitals", 200, "own vitals"),
        ("GET", "/api/nursing/form-options", 200, "form dropdowns"),
        ("GET", "/api/patients", 200, "own patients"),
        ("GET", "/api/transactions", 403, "billing is off limits"),
    ],
    "reception": [
        ("GET", "/api/patients", 200, "patient registry"),
        ("GET", "/api/appointments/today", 200, "today's appointments"),
        ("GET", "/api/procedures", 200, "procedures"),
        ("GET", "/api/doctors", 200, "doctor directory"),
        ("GET", "/api/transactions", 200, "transactions"),
        ("GET", "/api/doctor/dashboard", 403, "doctor dashboard is off limits"),
    ],
    "accounts": [
        ("GET", "/api/transactions", 200, "transactions"),
        ("GET", "/api/patients", 200, "patient registry"),
        ("GET", "/api/lab/tests", 403, "lab is off limits"),
    ],
    "lab": [
        ("GET", "/api/lab/categories", 200, "test categories"),
        ("GET", "/api/lab/tests", 200, "lab tests"),
        ("GET", "/api/nursing/notes", 403, "nursing is off limits"),
    ],
}


@dataclass
class CheckResult:
    role: str
    method: str
    endpoint: str
    expected: int
    status_code: int
    elapsed: float
    description: str = ""
    error: str = ""

    @property
    def success(self) -> bool:
        return self.status_code == self.expected


class SmokeTester:
    def __init__(self):
        self.session = requests.Session()
        self.results: List[CheckResult] = []

    def login(self, role: str, username: str) -> Optional[dict]:
        start = time.time()
        try:
            r = self.session.post(f"{BASE_URL}/api/auth/login", json={"username": username, "password": PASSWORD}, timeout=10)
        except requests.RequestException as e:
            self.results.append(CheckResult(role, "POST", "/api/auth/login", 200, 0, 0, "login", str(e)))
            print(f"FAIL login {username}: {e}")
            return None
        result = CheckResult(role, "POST", "/api/auth/login", 200, r.status_code, time.time() - start, "login")
        if not result.success:
            result.error = r.text[:200]
        self.results.append(result)
        if not result.success:
            print(f"FAIL login {username}: {r.status_code}")
            return None
        data = r.json()
        self.session.headers["Authorization"] = f"Token {data['token']}"
        condition = (data.get("scope") or {}).get("condition")
        print(f"ok   login {username} ({role})" + (f" [{condition}]" if condition else ""))
        return data

    def check(self, role: str, method: str, endpoint: str, expected: int, description: str) -> CheckResult:
        start = time.time()
        try:
            r = self.session.request(method, f"{BASE_URL}{endpoint}", timeout=10)
            result = CheckResult(role, method, endpoint, expected, r.status_code, time.time() - start, description)
            if not result.success:
                result.error = r.text[:200]
        except requests.RequestException as e:
            result = CheckResult(role, method, endpoint, expected, 0, time.time() - start, description, str(e))
        self.results.append(result)
        mark = "ok  " if result.success else "FAIL"
        print(f"{mark} {method} {endpoint} -> {result.status_code} ({result.elapsed:.2f}s) {description}")
        return result

    def run_role(self, role: str):
        self.session = requests.Session()
        if self.login(role, DEMO_USERS[role]) is None:
            return
        for method, endpoint, expected, description in COMMON_CASES + ROLE_CASES[role]:
            self.check(role, method, endpoint, expected, description)
        self.check(role, "POST", "/api/auth/logout", 200, "logout")

    def run(self) -> bool:
        for role in DEMO_USERS:
            print(f"\n== {role} ==")
            self.run_role(role)
        failures = [r for r in self.results if not r.success]
        print(f"\n{len(self.results)} checks, {len(failures)} failed")
        for f in failures:
            print(f"  [{f.role}] {f.method} {f.endpoint}: expected {f.expected}, got {f.status_code} {f.error}")
        return not failures


def main():
    sys.exit(0 if SmokeTester().run() else 1)


if __name__ == "__main__":
    main()
