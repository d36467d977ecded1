from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from ecolens.db.database import get_db
from ecolens.models.user import User
from ecolens.schemas.auth import Token
from ecolens.schemas.user import UserResponse, UserCreate
from ecolens.core.email import Mailer
from ecolens.core.security import verify_password, create_access_token, get_password_hash
from ecolens.core.dependencies import get_current_active_user, get_mailer

# Router definition
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
        data: UserCreate,
        background_tasks: BackgroundTasks,
        db: AsyncSession = Depends(get_db),
        mailer: Mailer = Depends(get_mailer)
):
    """Registers a reporter account and queues the welcome email."""
    normalized_email = data.email.lower()

    user_exists_stmt = select(User).where(User.email == normalized_email)
    if (await db.execute(user_exists_stmt)).scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered."
        )

    new_user = User(
        name=data.name,
        email=normalized_email,
        password_hash=get_password_hash(data.password),
        is_active=True
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    background_tasks.add_task(mailer.send_welcome_email, new_user.email, new_user.name)

    return new_user


@router.post("/token", response_model=Token)
async def login_for_access_token(
        form_data: OAuth2PasswordRequestForm = Depends(),
        db: AsyncSession = Depends(get_db)
):
    """
    Handles user login using standard OAuth2 (username/password) form data
    and returns an access token. The username is the account email.
    """
    normalized_email = form_data.username.lower()

    stmt = select(User).where(User.email == normalized_email)
    result = await db.execute(stmt)
    user = result.scalars().first()

    if not user or not user.is_active or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(subject=user.id, token_type="user")

    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/users/me", response_model=UserResponse)
async def read_users_me(
        current_user: User = Depends(get_current_active_user)
):
    """Retrieves the current authenticated user's data (used by the frontend context)."""
    return current_user
