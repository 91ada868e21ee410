"""
Request Dependencies

Services are built once in the application lifespan and stored on
``app.state``; routes receive them through these dependencies.
"""

import secrets
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from beacon_analytics.config import Settings
from beacon_analytics.errors import ValidationFault
from beacon_analytics.ingestion.admission import AdmissionController
from beacon_analytics.ingestion.identity import client_address
from beacon_analytics.ingestion.service import IngestionService
from beacon_analytics.serving.aggregation import AggregationService

DASHBOARD_REALM = "Lightweight Web Analytics Dashboard"

_basic = HTTPBasic(auto_error=False, realm=DASHBOARD_REALM)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion


def get_aggregation_service(request: Request) -> AggregationService:
    return request.app.state.aggregation


def get_admission_controller(request: Request) -> AdmissionController:
    return request.app.state.admission


def get_client_address(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Client address from trusted proxy headers, falling back to the socket peer"""
    peer = request.client.host if request.client else None
    return client_address(request.headers, peer, settings.ingestion.trusted_proxies)


def admit_beacon(
    source_addr: str = Depends(get_client_address),
    admission: AdmissionController = Depends(get_admission_controller),
) -> str:
    """
    Count the beacon against its source's window.

    Raises:
        RateLimitDenied: Handled by the application's exception handler
    """
    admission.check(source_addr)
    return source_addr


def require_dashboard_auth(
    credentials: HTTPBasicCredentials = Depends(_basic),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """
    HTTP Basic auth for the dashboard.

    Only enforced when both ``DASHBOARD_USERNAME`` and ``DASHBOARD_PASSWORD``
    are configured.
    """
    security = settings.security
    if not security.dashboard_auth_enabled:
        return

    if credentials is not None:
        username_ok = secrets.compare_digest(
            credentials.username.encode(), security.dashboard_username.encode()
        )
        password_ok = secrets.compare_digest(
            credentials.password.encode(),
            security.dashboard_password.get_secret_value().encode(),
        )
        if username_ok and password_ok:
            return

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": f'Basic realm="{DASHBOARD_REALM}"'},
    )


async def json_body(request: Request) -> Any:
    """
    Decoded JSON request body.

    Raises:
        ValidationFault: The body is not valid JSON
    """
    try:
        return await request.json()
    except ValueError as e:
        raise ValidationFault("Request body must be valid JSON") from e
