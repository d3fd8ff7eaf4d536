from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from smart_circular.ledger import Ledger
from smart_circular.schemas.schemas import Account

# This tells FastAPI to look for the "Authorization: Bearer <token>" header
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/session")


def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def get_current_account(token: str = Depends(oauth2_scheme), ledger: Ledger = Depends(get_ledger)) -> Account:
    """
    Resolves the bearer token to the signed-in account.
    """
    account_id = ledger.identity.current_session(token)
    account = ledger.directory.get(account_id) if account_id else None
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account


def get_admin_account(
    account: Account = Depends(get_current_account), ledger: Ledger = Depends(get_ledger)
) -> Account:
    ledger.identity.require_privileged(account.id)
    return account
