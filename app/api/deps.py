"""API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, UnauthorizedError
from app.core.permissions import parse_role
from app.core.security import verify_token
from app.database import get_db
from app.domain.actor import Actor
from app.gateways.base import PaymentGateway
from app.gateways.manual import ManualGateway
from app.services.booking_engine import BookingEngine
from app.services.notification_service import NotificationService, notification_service
from app.services.payment_gate import PaymentGate
from app.services.reporting_service import ReportingService
from app.stores.base import BookingStore, ListingProvider, PaymentLedger
from app.stores.sql import SqlBookingStore, SqlListingProvider, SqlPaymentLedger

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Actor:
    """Build the calling actor from the bearer token's claims."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials, token_type="access")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")

    return Actor(
        user_id=str(user_id),
        email=payload.get("email"),
        role=parse_role(payload.get("role")),
    )


async def get_current_admin(
    actor: Annotated[Actor, Depends(get_current_actor)],
) -> Actor:
    """Get current actor and verify they are an admin."""
    if not actor.is_admin:
        raise UnauthorizedError("Admin access required")
    return actor


# ==================== STORES ====================


async def get_booking_store(db: Annotated[AsyncSession, Depends(get_db)]) -> BookingStore:
    return SqlBookingStore(db)


async def get_listing_provider(db: Annotated[AsyncSession, Depends(get_db)]) -> ListingProvider:
    return SqlListingProvider(db)


async def get_payment_ledger(db: Annotated[AsyncSession, Depends(get_db)]) -> PaymentLedger:
    return SqlPaymentLedger(db)


def get_payment_gateway() -> PaymentGateway:
    return ManualGateway()


# ==================== SERVICES ====================


async def get_booking_engine(
    store: Annotated[BookingStore, Depends(get_booking_store)],
    listings: Annotated[ListingProvider, Depends(get_listing_provider)],
) -> BookingEngine:
    return BookingEngine(store, listings)


async def get_payment_gate(
    engine: Annotated[BookingEngine, Depends(get_booking_engine)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    ledger: Annotated[PaymentLedger, Depends(get_payment_ledger)],
) -> PaymentGate:
    return PaymentGate(engine, gateway, ledger)


async def get_reporting_service(
    store: Annotated[BookingStore, Depends(get_booking_store)],
) -> ReportingService:
    return ReportingService(store)


def get_notification_service() -> NotificationService:
    return notification_service


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
CurrentAdmin = Annotated[Actor, Depends(get_current_admin)]
Engine = Annotated[BookingEngine, Depends(get_booking_engine)]
Gate = Annotated[PaymentGate, Depends(get_payment_gate)]
Notifier = Annotated[NotificationService, Depends(get_notification_service)]
