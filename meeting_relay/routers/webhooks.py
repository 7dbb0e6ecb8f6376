from typing import Any, Optional

import logging

from fastapi import APIRouter, Body, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field, ValidationError

from meeting_relay.config import ConfigurationError
from meeting_relay.services.event_correlator import EventCorrelator, WebhookValidationError


class ZoomWebhook(BaseModel):
    event: str = Field(..., min_length=1)
    payload: dict


class AttendeeWebhook(BaseModel):
    trigger: str = Field(..., min_length=1)
    data: Any = None
    app_session_id: Optional[str] = None


def create_webhooks_router(correlator: EventCorrelator) -> APIRouter:
    router = APIRouter(tags=["webhooks"])
    logger = logging.getLogger("relay.api.webhooks")

    @router.post("/")
    def zoom_webhook(body: Any = Body(None)) -> Response:
        try:
            envelope = ZoomWebhook.model_validate(body)
        except ValidationError:
            logger.warning("Rejected Zoom webhook: missing payload or event")
            raise HTTPException(status_code=400, detail="Missing payload or event")

        logger.info("Received Zoom webhook: event=%s", envelope.event)
        logger.debug("Zoom webhook payload: %s", envelope.payload)
        try:
            result = correlator.handle_zoom_event(envelope.event, envelope.payload)
        except WebhookValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ConfigurationError:
            raise
        except Exception:
            # Zoom retries anything but a 200; the event is already accepted.
            logger.exception("Error handling Zoom webhook: event=%s", envelope.event)
            result = None

        if result is not None:
            return JSONResponse(result)
        return PlainTextResponse("OK")

    @router.post("/attendee-webhook")
    def attendee_webhook(body: Any = Body(None)) -> Response:
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="invalid JSON")
        try:
            envelope = AttendeeWebhook.model_validate(body)
        except ValidationError:
            logger.warning("Rejected Attendee webhook: missing trigger")
            raise HTTPException(status_code=400, detail="Missing trigger")

        logger.info(
            "Received Attendee webhook: trigger=%s app_session_id=%s",
            envelope.trigger,
            envelope.app_session_id,
        )
        try:
            correlator.handle_attendee_event(
                envelope.trigger, envelope.data, envelope.app_session_id
            )
        except Exception:
            logger.exception("Error handling Attendee webhook: trigger=%s", envelope.trigger)
        return Response(status_code=200)

    return router
