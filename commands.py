# Quick reference commands (run from repo root). These are comments only; copy/paste as needed.

# Install the app plus test dependencies
# python -m pip install -e ".[test]"

# Run the full test suite (Postgres-backed tests skip unless DATABASE_URL is set)
# python -m pytest

# Run focused test files
# python -m pytest tests/test_catalog.py tests/test_filters.py
# python -m pytest tests/test_access_gate.py tests/test_auth_routes.py tests/test_security_headers.py
# python -m pytest tests/test_digests.py tests/test_digest_endpoint.py
# python -m pytest tests/test_dashboard.py tests/test_geocoding.py
# DATABASE_URL=postgresql://localhost/tyomaat_test python -m pytest tests/test_stores.py

# Start the API locally (with env vars loaded)
# python -m dotenv run -- python -m uvicorn app.api:app --reload

# Provision accounts (there is no self-service signup)
# python -m scripts.create_user rakentaja@example.com
# python -m scripts.create_user rakentaja@example.com --deactivate
# python -m scripts.create_user --list

# Run the digest job once from the shell instead of the HTTP trigger
# python main.py --debug
# python main.py

# Trigger digests through the API (what the scheduler calls)
# curl "http://localhost:8000/api/digests?secret=$CRON_SECRET&debug=1"
