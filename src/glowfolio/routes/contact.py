import re

from fastapi import APIRouter, Request, status

from ..context import AppContext
from ..errors import AppError
from ..mailer import EmailDeliveryError
from ..schemas import ContactRequest, ContactResponse

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_contact(payload: ContactRequest | None) -> tuple[str, str, str]:
    """Return the trimmed ``(name, email, message)`` or raise a validation error."""
    if payload is None or not payload.name or not payload.email or not payload.message:
        raise AppError(status.HTTP_400_BAD_REQUEST, "MISSING_FIELDS", "Všechna pole jsou povinná")
    if not payload.name.strip():
        raise AppError(status.HTTP_400_BAD_REQUEST, "INVALID_NAME", "Jméno nesmí být prázdné")
    if not EMAIL_REGEX.match(payload.email):
        raise AppError(status.HTTP_400_BAD_REQUEST, "INVALID_EMAIL", "Neplatný formát emailu")
    if not payload.message.strip():
        raise AppError(status.HTTP_400_BAD_REQUEST, "INVALID_MESSAGE", "Zpráva nesmí být prázdná")
    return payload.name.strip(), payload.email.strip(), payload.message.strip()


def build_router(ctx: AppContext) -> APIRouter:
    router = APIRouter()

    @router.post("", response_model=ContactResponse)
    @ctx.api_limit()
    def send_contact(request: Request, payload: ContactRequest | None = None):
        """Forward a contact form submission to the site owner by email."""
        name, email, message = validate_contact(payload)
        try:
            ctx.mailer.send_contact_message(name, email, message)
        except EmailDeliveryError as exc:
            raise AppError(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "EMAIL_SEND_FAILED",
                "Nepodařilo se odeslat zprávu. Zkuste to prosím později.",
            ) from exc
        return ContactResponse()

    return router
