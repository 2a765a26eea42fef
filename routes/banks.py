"""
Bank Account Routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_verified
from routes.schemas import AddBankAccountRequest, UpdateBankAccountRequest
from services.bank_account_service import BankAccountService, serialize_bank_account
from utils.responses import success_response

router = APIRouter(prefix="/banks", tags=["banks"])


@router.post("")
def add_bank_account(body: AddBankAccountRequest, user: User = Depends(require_verified),
                     db: Session = Depends(get_db)):
    account = BankAccountService(db).add_account(user.id, body.bank_name, body.account_number, body.account_holder)
    return success_response(
        serialize_bank_account(account),
        message="Bank account added successfully",
        status_code=201,
    )


@router.get("")
def list_bank_accounts(user: User = Depends(require_verified), db: Session = Depends(get_db)):
    accounts = BankAccountService(db).list_accounts(user.id)
    return success_response([serialize_bank_account(a) for a in accounts])


@router.put("/{account_id}")
def update_bank_account(account_id: int, body: UpdateBankAccountRequest, user: User = Depends(require_verified),
                        db: Session = Depends(get_db)):
    account = BankAccountService(db).update_account(
        user.id, account_id, bank_name=body.bank_name, account_holder=body.account_holder
    )
    return success_response(serialize_bank_account(account), message="Bank account updated successfully")


@router.put("/{account_id}/default")
def set_default_bank_account(account_id: int, user: User = Depends(require_verified),
                             db: Session = Depends(get_db)):
    account = BankAccountService(db).set_default(user.id, account_id)
    return success_response(serialize_bank_account(account), message="Default bank account updated successfully")


@router.delete("/{account_id}")
def delete_bank_account(account_id: int, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    BankAccountService(db).delete_account(user.id, account_id)
    return success_response(message="Bank account deleted successfully")
