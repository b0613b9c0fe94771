import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from post_scheduler.api.auth_utils import DEFAULT_SECRET_KEY, decode_access_token
from post_scheduler.app_shell.config import resolve_data_dir
from post_scheduler.app_shell.context import ServiceContext
from post_scheduler.components.posts import PostService
from post_scheduler.components.scheduler import SchedulerService
from post_scheduler.components.security import SecurityValidator
from post_scheduler.core.ports.repo import MetricsRepoPort
from post_scheduler.rules.loader import load_rules_with_env
from post_scheduler.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = resolve_data_dir()
        self.db_path = str(self.data_dir / "scheduler.db")
        self.rules_path = Path(os.environ.get("SCHED_RULES_PATH", str(self.base_dir / "rules.yaml")))


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules_with_env(get_settings().rules_path)


# --- Services ---
# One context per process; the violation tracker is shared across requests.
@lru_cache
def get_context() -> ServiceContext:
    return ServiceContext.create(get_settings().db_path, get_rules())


def get_scheduler_service(ctx: ServiceContext = Depends(get_context)) -> SchedulerService:
    return ctx.scheduler


def get_security_validator(ctx: ServiceContext = Depends(get_context)) -> SecurityValidator:
    return ctx.security


def get_post_service(ctx: ServiceContext = Depends(get_context)) -> PostService:
    return ctx.post_service


def get_metrics_repo(ctx: ServiceContext = Depends(get_context)) -> MetricsRepoPort:
    return ctx.metrics_repo


def get_supported_timezones(ctx: ServiceContext = Depends(get_context)) -> list[str]:
    return list(ctx.rules.timezone.supported_timezones)


def get_trust_forwarded_for(ctx: ServiceContext = Depends(get_context)) -> bool:
    return ctx.rules.security.trust_forwarded_for


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


def get_jwt_secret() -> str:
    return os.environ.get(get_rules().security.jwt_secret_env) or DEFAULT_SECRET_KEY


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    secret_key: Annotated[str, Depends(get_jwt_secret)],
) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials, secret_key)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None or not isinstance(user_id, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return user_id
