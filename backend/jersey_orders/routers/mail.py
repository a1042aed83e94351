"""Mail relay endpoint.

Always answers ``{"success": bool, "message": str}`` so the caller can tell
a business failure from a misconfigured relay (anything that is not JSON).
Authentication failures use the same shape.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasicCredentials

from ..errors import MailRelayError, ValidationFailed
from ..security import credentials_valid, optional_security
from ..services.mailer import Mailer, get_mailer, validate_mail_form

router = APIRouter(tags=["Mail"])


def _reply(success: bool, message: str, status_code: int = status.HTTP_200_OK, headers: dict = None) -> JSONResponse:
    return JSONResponse({"success": success, "message": message}, status_code=status_code, headers=headers)


@router.post("/sendmail")
def sendmail(
    name: str = Form(""),
    email: str = Form(""),
    to: str = Form(""),
    subject: str = Form(""),
    message: str = Form(""),
    credentials: Optional[HTTPBasicCredentials] = Depends(optional_security),
    mailer: Mailer = Depends(get_mailer),
):
    if not credentials_valid(credentials):
        return _reply(
            False,
            "Not authenticated",
            status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Basic"},
        )
    try:
        request = validate_mail_form(name, email, to, subject, message)
    except ValidationFailed as exc:
        return _reply(False, exc.message, status.HTTP_400_BAD_REQUEST)
    try:
        return _reply(True, mailer.send(request))
    except MailRelayError as exc:
        return _reply(False, exc.message, status.HTTP_500_INTERNAL_SERVER_ERROR)
