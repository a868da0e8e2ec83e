"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: uvicorn workers) importe `parkpay.asgi:app`.
- Toute la configuration FastAPI est centralisée dans parkpay.app_setup.factory.
"""

from parkpay.app import app
