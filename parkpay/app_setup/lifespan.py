"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Initialise FastAPILimiter (Redis) avec options de test (fakeredis).
- Variables d'environnement supportées:
  - DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1: désactive complètement (tests)
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_RATE_LIMIT_FALLBACK=1: active un fallback local si l'init échoue
- Les clients Supabase/Stripe ne sont pas créés ici: ils le sont au premier usage (parkpay.dependencies).
"""
import os
import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

try:
    from fakeredis.aioredis import FakeRedis  # tests only
except Exception:
    FakeRedis = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Configure le rate limiting et gère les fallbacks.
    - En cas d'échec de Redis et sans fallback, le rate limiting est désactivé proprement.
    - Les logs indiquent l'état effectif (enabled/disabled).
    """
    logger = logging.getLogger("uvicorn.error")
    limiter_started = False
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
    else:
        try:
            if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
                if not FakeRedis:
                    raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
                r = FakeRedis(decode_responses=True)
            else:
                redis_url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
                r = aioredis.from_url(redis_url, encoding="utf-8", decode_responses=True)
            await FastAPILimiter.init(r)
            limiter_started = True
            app.state.rate_limit_enabled = True
            logger.info("Rate limiting enabled")
        except Exception as e:
            if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
                app.state.rate_limit_enabled = True
                logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
            else:
                app.state.rate_limit_enabled = False
                logger.warning("Rate limiting disabled due to init error: %s", e)

    yield

    if limiter_started:
        await FastAPILimiter.close()
