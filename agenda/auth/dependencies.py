from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWTError
from sqlalchemy.orm import Session

from agenda.auth import jwt_handler
from agenda.database import SessionLocal
from agenda.models.professional import Professional

security = HTTPBearer()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_professional(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Professional:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    professional_id = payload.get("sub")
    if not professional_id:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    professional = db.query(Professional).filter(Professional.id == professional_id).first()
    if professional is None:
        raise HTTPException(status_code=401, detail="Professional not found")
    return professional
