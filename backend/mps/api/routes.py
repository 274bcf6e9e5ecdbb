"""API routes for the proctoring application."""

import logging
from dataclasses import dataclass

from fastapi import WebSocket, WebSocketDisconnect

from ..services.auth import LoginValidator
from ..services.catalog import Catalog
from ..services.eligibility import EligibilityService
from ..services.registry import SessionRegistry
from ..services.scheduler import SweepScheduler
from .endpoint import ProctoringEndpoint

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Process-wide collaborators shared by every connection."""

    registry: SessionRegistry
    catalog: Catalog
    validator: LoginValidator
    eligibility: EligibilityService
    scheduler: SweepScheduler
    timeout: float
    psid_length: int


async def websocket_endpoint(websocket: WebSocket, services: Services) -> None:
    """Handle one proctoring client connection until it disconnects."""
    await websocket.accept()

    endpoint = ProctoringEndpoint(
        websocket.send_text,
        services.registry,
        services.catalog,
        services.validator,
        services.eligibility,
        clock=services.scheduler.clock,
        timeout=services.timeout,
        psid_length=services.psid_length,
    )
    await endpoint.on_open()

    try:
        while True:
            text = await websocket.receive_text()
            await endpoint.on_message(text)
    except WebSocketDisconnect:
        logger.info("[DISCONNECTED] proctoring client")
    except Exception as e:
        logger.error(f"[WS ERROR] {e}")
        await endpoint.on_error(e)
    finally:
        await endpoint.on_close()
