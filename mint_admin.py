# mint_admin.py
import os

from luckytaj_backend.core.admin_guard import mint_admin_token

if not os.getenv("JWT_SECRET"):
    raise SystemExit("JWT_SECRET not set")

email = os.getenv("ADMIN_EMAIL")
if not email:
    raise SystemExit("ADMIN_EMAIL not set")

print(mint_admin_token(email))
