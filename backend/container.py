#  Voice Tutor - Dependency Injection Container
#
#  DeclarativeContainer wiring all services and their dependencies.
#  Replaces module-level singletons with injectable providers.
#
#  Depends on: config.py, db/connection.py, services/*
#  Used by:    app.py, routes/*, middleware/auth.py, rate_limit.py

from datetime import timedelta

import httpx
from dependency_injector import containers, providers

from backend.config import (
    AUTH_ALGORITHM,
    AUTH_BCRYPT_ROUNDS,
    AUTH_SECRET_KEY,
    AUTH_TOKEN_EXPIRE_DAYS,
    CONVERSATION_DAILY_LIMIT,
    OPENAI_API_KEY,
    RATE_LIMIT_POLICIES,
    RATE_LIMIT_SWEEP,
    REALTIME_BASE_URL,
    REALTIME_MODEL,
    REALTIME_TIMEOUT,
)
from backend.db.connection import Database
from backend.services.auth import AuthService
from backend.services.authenticator import RequestAuthenticator
from backend.services.conversations import ConversationService
from backend.services.passwords import PasswordHasher
from backend.services.profile import ProfileService
from backend.services.rate_limiter import InMemoryRateLimitStore, RateLimiter
from backend.services.realtime import RealtimeSessionClient
from backend.services.tokens import SessionTokenService


class Container(containers.DeclarativeContainer):
    """DI container for the Voice Tutor backend.

    All services are Singletons: one instance per application lifecycle.
    Routes access them via @inject + Depends(Provide[Container.xxx]).
    Tests override them via container.xxx.override(providers.Object(mock)).
    """

    wiring_config = containers.WiringConfiguration(
        modules=[
            "backend.routes.auth",
            "backend.routes.profile",
            "backend.routes.voices",
            "backend.routes.conversations",
            "backend.middleware.auth",
            "backend.rate_limit",
        ]
    )

    # --- Core ---
    db = providers.Singleton(Database)
    http_client = providers.Singleton(httpx.AsyncClient, timeout=REALTIME_TIMEOUT)

    # --- Security ---
    passwords = providers.Singleton(PasswordHasher, rounds=AUTH_BCRYPT_ROUNDS)
    tokens = providers.Singleton(
        SessionTokenService,
        secret=AUTH_SECRET_KEY,
        algorithm=AUTH_ALGORITHM,
        lifetime=timedelta(days=AUTH_TOKEN_EXPIRE_DAYS),
    )
    rate_limit_store = providers.Singleton(InMemoryRateLimitStore)
    rate_limiter = providers.Singleton(
        RateLimiter.from_config,
        policies=RATE_LIMIT_POLICIES,
        sweep=RATE_LIMIT_SWEEP,
        store=rate_limit_store,
    )

    # --- Services ---
    auth = providers.Singleton(AuthService, db=db, passwords=passwords, tokens=tokens)
    authenticator = providers.Singleton(RequestAuthenticator, tokens=tokens, users=auth)
    profiles = providers.Singleton(ProfileService, db=db, users=auth)
    realtime = providers.Singleton(
        RealtimeSessionClient,
        http_client=http_client,
        api_key=OPENAI_API_KEY,
        base_url=REALTIME_BASE_URL,
        model=REALTIME_MODEL,
        timeout=REALTIME_TIMEOUT,
    )
    conversations = providers.Singleton(
        ConversationService,
        db=db,
        realtime=realtime,
        daily_limit=CONVERSATION_DAILY_LIMIT,
    )
