from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ecolens.core.email import Mailer
from ecolens.core.security import decode_token
from ecolens.db.database import get_db
from ecolens.models.user import User
from ecolens.services.classifier import ViolationClassifier
from ecolens.services.geocoding import NominatimGeocoder
from ecolens.services.local_laws import LocalLawAdvisor
from ecolens.services.report_assembler import ReportAssembler

# auto_error=False: a missing token yields None so the report assembler can
# reject the submission itself
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)

credentials_exception = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_optional_user(
        db: AsyncSession = Depends(get_db),
        token: Optional[str] = Depends(oauth2_scheme)
) -> Optional[User]:
    """Returns the authenticated user, None when no token was sent, 401 for a bad token."""
    if not token:
        return None

    payload = decode_token(token)
    if payload is None or payload.get("type") != "user" or not payload.get("sub"):
        raise credentials_exception

    try:
        user_uuid = UUID(payload["sub"])
    except ValueError:
        raise credentials_exception

    stmt = select(User).where(User.id == user_uuid)
    result = await db.execute(stmt)
    user = result.scalars().first()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found or inactive")

    return user


async def get_current_active_user(
        user: Optional[User] = Depends(get_optional_user)
) -> User:
    if user is None:
        raise credentials_exception
    return user


# --- Process-scoped services (built in the app lifespan) ---

def get_classifier(request: Request) -> ViolationClassifier:
    return request.app.state.services.classifier


def get_report_assembler(request: Request) -> ReportAssembler:
    return request.app.state.services.report_assembler


def get_law_advisor(request: Request) -> LocalLawAdvisor:
    return request.app.state.services.law_advisor


def get_geocoder(request: Request) -> NominatimGeocoder:
    return request.app.state.services.geocoder


def get_mailer(request: Request) -> Mailer:
    return request.app.state.services.mailer
