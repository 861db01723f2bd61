"""
Restart smoke check against a real database.

Starts the app, registers a rider, stops it, starts it again and logs in
with the same credentials. Run from the repository root with DATABASE_URL
pointing at PostgreSQL and Redis reachable.
"""

import os
import signal
import subprocess
import sys
import time

import httpx

BASE_URL = "http://127.0.0.1:8000"
API_PREFIX = "/v1"

RIDER = {
    "email": "persist_rider@test.com",
    "username": "persist_rider",
    "password": "securePassword123",
    "full_name": "Persist Rider",
}


def start_server(echo_sql: bool = False) -> subprocess.Popen:
    env = dict(os.environ)
    if echo_sql:
        env["DB_ECHO"] = "True"
    return subprocess.Popen(
        [sys.executable, "-m", "uvicorn", "rideshare.app.main:app", "--host", "127.0.0.1", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        env=env
    )


def stop_server(proc: subprocess.Popen) -> None:
    proc.send_signal(signal.SIGTERM)
    proc.wait()


def wait_for_server(retries=10, delay=2):
    url = f"{BASE_URL}/health"
    print(f"Waiting for server at {url}...")
    for _ in range(retries):
        try:
            if httpx.get(url).status_code == 200:
                print("✅ Server is up!")
                return True
        except httpx.ConnectError:
            pass
        time.sleep(delay)
    print("❌ Server failed to start.")
    return False


def register_rider():
    resp = httpx.post(f"{BASE_URL}{API_PREFIX}/auth/register", json=RIDER)
    if resp.status_code == 400 and "already registered" in resp.text:
        print("⚠️ Rider already exists (persisted by a previous run?)")
    elif resp.status_code == 201:
        print(f"✅ Rider registered with id {resp.json()['user_id']}")
    else:
        raise RuntimeError(f"Registration failed: {resp.status_code} {resp.text}")


def login_and_browse():
    resp = httpx.post(
        f"{BASE_URL}{API_PREFIX}/auth/login",
        json={"username": RIDER["username"], "password": RIDER["password"]}
    )
    if resp.status_code != 200:
        raise RuntimeError(f"Login failed after restart: {resp.status_code} {resp.text}")
    print("✅ Login successful (rider persisted)")
    
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}
    me = httpx.get(f"{BASE_URL}{API_PREFIX}/auth/me", headers=headers)
    print(f"   /auth/me -> {me.status_code} role={me.json().get('role')}")
    
    routes = httpx.get(f"{BASE_URL}{API_PREFIX}/rider/routes", headers=headers)
    print(f"   /rider/routes -> {routes.status_code} total={routes.json().get('total')}")


def run_verification():
    print("\n--- [Step 1] Starting server ---")
    proc = start_server(echo_sql=True)
    try:
        if not wait_for_server():
            out, err = proc.communicate(timeout=2)
            print("Server Stdout:", out.decode())
            print("Server Stderr:", err.decode())
            raise RuntimeError("Server start failed")
        print("\n--- [Step 2] Registering rider ---")
        register_rider()
    finally:
        print("\n--- [Step 3] Stopping server ---")
        stop_server(proc)
    
    # Port release
    time.sleep(2)
    
    print("\n--- [Step 4] Restarting server ---")
    proc = start_server()
    try:
        if not wait_for_server():
            raise RuntimeError("Server restart failed")
        print("\n--- [Step 5] Logging in after restart ---")
        login_and_browse()
    finally:
        print("\n--- [Step 6] Stopping server ---")
        stop_server(proc)


if __name__ == "__main__":
    run_verification()
