from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session

from marketplace.database import get_session
from marketplace.models.user import User
from marketplace.schemas.auth_schemas import SendOTPRequest, Token, UserOut, VerifyOTPRequest
from marketplace.services import auth_service
from marketplace.services.sms_service import get_notifier
from marketplace.utils.token import get_current_user

router = APIRouter()


@router.post("/send-otp")
def send_otp(
    payload: SendOTPRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    notifier=Depends(get_notifier),
):
    auth_service.send_otp(
        session,
        payload.phone,
        notifier=notifier,
        background_tasks=background_tasks,
    )
    return {"message": "OTP sent successfully"}


@router.post("/verify-otp", response_model=Token)
def verify_otp(payload: VerifyOTPRequest, session: Session = Depends(get_session)):
    token, user = auth_service.verify_otp(
        session, payload.phone, payload.otp, session_id=payload.session_id
    )
    return Token(
        access_token=token,
        token_type="bearer",
        user=UserOut.model_validate(user),
    )


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
