"""
HTTP routes for transactions, sync, budgets and notifications.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from cryptospend.app import SpendTracker
from cryptospend.budget.evaluator import days_remaining
from cryptospend.data.sources import StaticTransactionSource
from cryptospend.database.models import DEFAULT_USER_ID, ensure_utc
from .schemas import (
    BudgetCreate,
    BudgetOut,
    BudgetUpdate,
    BudgetUsageOut,
    NotificationCreate,
    NotificationOut,
    SyncRequest,
    SyncResponse,
    TransactionCreate,
    TransactionOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def get_tracker(request: Request) -> SpendTracker:
    return request.app.state.tracker


# Sync


@router.post("/sync", response_model=SyncResponse)
def sync_transactions(body: SyncRequest, tracker: SpendTracker = Depends(get_tracker)):
    """Store new transactions from supplied records or the block explorer."""
    account = body.account or tracker.config.wallet.address
    if not account:
        raise HTTPException(status_code=400, detail="account is required")

    if body.transactions is not None:
        source = StaticTransactionSource(body.transactions)
    elif tracker.source is not None:
        source = tracker.source
    else:
        raise HTTPException(
            status_code=400,
            detail="No transactions supplied and no block explorer configured",
        )

    result = tracker.orchestrator.sync(body.user_id, account, source)
    response = SyncResponse(
        success=result.success,
        message=result.message,
        fetched=result.fetched,
        added=result.added_count,
        transactions=[TransactionOut.from_model(tx) for tx in result.added],
    )
    if not result.success:
        return JSONResponse(
            status_code=502, content=response.model_dump(mode="json", by_alias=True)
        )
    return response


# Transactions


@router.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    body: TransactionCreate, tracker: SpendTracker = Depends(get_tracker)
):
    result = tracker.orchestrator.record_transaction(body.to_model())
    if not result.created:
        raise HTTPException(status_code=409, detail="Transaction already exists")
    return TransactionOut.from_model(result.transaction)


@router.get("/transactions", response_model=list[TransactionOut])
def list_transactions(
    user_id: int = Query(DEFAULT_USER_ID, alias="userId"),
    tracker: SpendTracker = Depends(get_tracker),
):
    transactions = tracker.storage.list_transactions(user_id)
    return [TransactionOut.from_model(tx) for tx in transactions]


@router.get("/transactions/{user_id}", response_model=list[TransactionOut])
def list_user_transactions(user_id: int, tracker: SpendTracker = Depends(get_tracker)):
    return list_transactions(user_id=user_id, tracker=tracker)


@router.get("/transactions/hash/{tx_hash}", response_model=TransactionOut)
def get_transaction_by_hash(tx_hash: str, tracker: SpendTracker = Depends(get_tracker)):
    tx = tracker.storage.get_transaction_by_hash(tx_hash)
    if tx is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionOut.from_model(tx)


@router.get(
    "/categorized-transactions", response_model=dict[str, list[TransactionOut]]
)
def categorized_transactions(
    user_id: int = Query(DEFAULT_USER_ID, alias="userId"),
    tracker: SpendTracker = Depends(get_tracker),
):
    grouped = tracker.storage.get_categorized_transactions(user_id)
    return {
        category: [TransactionOut.from_model(tx) for tx in txs]
        for category, txs in grouped.items()
    }


@router.get(
    "/categorized-transactions/{user_id}",
    response_model=dict[str, list[TransactionOut]],
)
def user_categorized_transactions(
    user_id: int, tracker: SpendTracker = Depends(get_tracker)
):
    return categorized_transactions(user_id=user_id, tracker=tracker)


# Budget


@router.get("/budget", response_model=Optional[BudgetOut])
def get_budget(
    user_id: int = Query(DEFAULT_USER_ID, alias="userId"),
    tracker: SpendTracker = Depends(get_tracker),
):
    budget = tracker.storage.get_budget(user_id)
    return BudgetOut.from_model(budget) if budget else None


@router.get("/budget/usage", response_model=BudgetUsageOut)
def get_budget_usage(
    user_id: int = Query(DEFAULT_USER_ID, alias="userId"),
    tracker: SpendTracker = Depends(get_tracker),
):
    budget = tracker.storage.get_budget(user_id)
    usage = tracker.evaluator.evaluate_budget(budget)
    return BudgetUsageOut.from_usage(usage, days_remaining(budget))


# Declared after /budget/usage so that path keeps matching
@router.get("/budget/{user_id}", response_model=BudgetOut)
def get_user_budget(user_id: int, tracker: SpendTracker = Depends(get_tracker)):
    budget = tracker.storage.get_budget(user_id)
    if budget is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return BudgetOut.from_model(budget)


@router.post("/budget", response_model=BudgetOut, status_code=201)
def create_budget(body: BudgetCreate, tracker: SpendTracker = Depends(get_tracker)):
    budget = tracker.storage.save_budget(body.to_model())
    logger.info(f"Budget set for user {budget.user_id}: {budget.amount} {budget.currency}")
    return BudgetOut.from_model(budget)


@router.put("/budget/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: int, body: BudgetUpdate, tracker: SpendTracker = Depends(get_tracker)
):
    current = tracker.storage.get_budget_by_id(budget_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Budget not found")

    changes = body.changes()
    start = changes.get("period_start", current.period_start)
    end = changes.get("period_end", current.period_end)
    if ensure_utc(end) <= ensure_utc(start):
        raise HTTPException(status_code=400, detail="periodEnd must be after periodStart")

    budget = tracker.storage.update_budget(budget_id, **changes)
    if budget is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return BudgetOut.from_model(budget)


# Notifications


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    user_id: int = Query(DEFAULT_USER_ID, alias="userId"),
    tracker: SpendTracker = Depends(get_tracker),
):
    return [
        NotificationOut.from_model(n) for n in tracker.storage.list_notifications(user_id)
    ]


@router.get("/notifications/{user_id}", response_model=list[NotificationOut])
def list_user_notifications(user_id: int, tracker: SpendTracker = Depends(get_tracker)):
    return list_notifications(user_id=user_id, tracker=tracker)


@router.post("/notifications", response_model=NotificationOut, status_code=201)
def create_notification(
    body: NotificationCreate, tracker: SpendTracker = Depends(get_tracker)
):
    return NotificationOut.from_model(tracker.storage.create_notification(body.to_model()))


@router.patch("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_notification_read(
    notification_id: int, tracker: SpendTracker = Depends(get_tracker)
):
    notification = tracker.storage.mark_notification_read(notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return NotificationOut.from_model(notification)
