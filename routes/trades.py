"""
Trade Routes
Open, list and complete trades; all require a verified user
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_verified
from routes.schemas import CompleteTradeRequest, StartTradeRequest
from services.trade_service import TradeService, serialize_trade
from utils.responses import success_response

router = APIRouter(prefix="/trades", tags=["trades"])


@router.post("/start")
def start_trade(body: StartTradeRequest, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    trade = TradeService(db).start_trade(user.id, body.amount, is_bot=body.is_bot)
    data = serialize_trade(trade)
    data["tradeId"] = data.pop("id")
    return success_response(data, message="Trade started successfully", status_code=201)


@router.get("")
def list_trades(
    status: Optional[str] = None,
    is_bot: Optional[bool] = Query(None, alias="isBot"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(require_verified),
    db: Session = Depends(get_db),
):
    result = TradeService(db).list_trades(user.id, status=status, is_bot=is_bot, page=page, limit=limit)
    return success_response(result)


@router.get("/graph/data")
def graph_data(days: int = Query(30, ge=1, le=365), user: User = Depends(require_verified)):
    return success_response(TradeService.graph_data(days=days))


@router.get("/{trade_id}")
def get_trade(trade_id: int, user: User = Depends(require_verified), db: Session = Depends(get_db)):
    trade = TradeService(db).get_trade(user.id, trade_id)
    return success_response(serialize_trade(trade))


@router.post("/{trade_id}/complete")
def complete_trade(trade_id: int, body: Optional[CompleteTradeRequest] = None,
                   user: User = Depends(require_verified), db: Session = Depends(get_db)):
    body = body or CompleteTradeRequest()
    trade = TradeService(db).complete_trade(
        user.id, trade_id,
        profit=body.profit,
        profit_percentage=body.profit_percentage,
    )
    return success_response(serialize_trade(trade), message="Trade completed successfully")
