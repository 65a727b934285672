from typing import Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .config import configure_logging
from .errors import (
    DuplicateMemberError,
    GroupNotFoundError,
    IdempotencyConflictError,
    ImbalanceInconsistencyError,
    InvalidEntryError,
    MemberHasBalanceError,
    MemberNotInGroupError,
    SettleUpError,
)
from .models import (
    AddMemberRequest,
    AnalyticsData,
    CreateGroupRequest,
    EntryResponse,
    Group,
    GroupBalancesResponse,
    LedgerEntry,
    RecordExpenseRequest,
    RecordPaymentRequest,
    SettleUpResponse,
)
from .service import SettleUpService

configure_logging()

app = FastAPI(
    title="SettleUp API",
    description="Shared-expense ledger that works out who owes whom within a group",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settleup_service = SettleUpService()

_STATUS_CODES = {
    GroupNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidEntryError: status.HTTP_400_BAD_REQUEST,
    MemberNotInGroupError: status.HTTP_400_BAD_REQUEST,
    DuplicateMemberError: status.HTTP_409_CONFLICT,
    MemberHasBalanceError: status.HTTP_409_CONFLICT,
    IdempotencyConflictError: status.HTTP_409_CONFLICT,
    ImbalanceInconsistencyError: 422,
}


def _http_error(e: SettleUpError) -> HTTPException:
    code = _STATUS_CODES.get(type(e), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=e.to_detail())


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "settleup"}


@app.post("/groups", response_model=Group, status_code=status.HTTP_201_CREATED, tags=["Groups"])
def create_group(request: CreateGroupRequest) -> Group:
    return settleup_service.create_group(request)


@app.get("/groups", response_model=list[Group], tags=["Groups"])
def list_groups() -> list[Group]:
    return settleup_service.list_groups()


@app.get("/groups/{group_id}", response_model=Group, tags=["Groups"])
def get_group(group_id: UUID) -> Group:
    try:
        return settleup_service.get_group(group_id)
    except SettleUpError as e:
        raise _http_error(e)


@app.post("/groups/{group_id}/members", response_model=Group, tags=["Groups"])
def add_member(group_id: UUID, request: AddMemberRequest) -> Group:
    try:
        return settleup_service.add_member(group_id, request.member)
    except SettleUpError as e:
        raise _http_error(e)


@app.delete("/groups/{group_id}/members/{member}", response_model=Group, tags=["Groups"])
def remove_member(group_id: UUID, member: str) -> Group:
    try:
        return settleup_service.remove_member(group_id, member)
    except SettleUpError as e:
        raise _http_error(e)


@app.post(
    "/groups/{group_id}/expenses", response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED, tags=["Entries"],
)
def record_expense(group_id: UUID, request: RecordExpenseRequest) -> EntryResponse:
    try:
        return settleup_service.record_expense(group_id, request)
    except SettleUpError as e:
        raise _http_error(e)


@app.post(
    "/groups/{group_id}/payments", response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED, tags=["Entries"],
)
def record_payment(group_id: UUID, request: RecordPaymentRequest) -> EntryResponse:
    try:
        return settleup_service.record_payment(group_id, request)
    except SettleUpError as e:
        raise _http_error(e)


@app.get("/groups/{group_id}/entries", response_model=list[LedgerEntry], tags=["Entries"])
def list_entries(group_id: UUID) -> list[LedgerEntry]:
    try:
        return settleup_service.list_entries(group_id)
    except SettleUpError as e:
        raise _http_error(e)


@app.get("/groups/{group_id}/balances", response_model=GroupBalancesResponse, tags=["Settle up"])
def get_balances(group_id: UUID) -> GroupBalancesResponse:
    try:
        return settleup_service.get_balances(group_id)
    except SettleUpError as e:
        raise _http_error(e)


@app.get("/groups/{group_id}/settlements", response_model=SettleUpResponse, tags=["Settle up"])
def get_settlements(group_id: UUID) -> SettleUpResponse:
    try:
        return settleup_service.get_settle_up(group_id)
    except SettleUpError as e:
        raise _http_error(e)


@app.get("/analytics", response_model=AnalyticsData, tags=["Reports"])
def get_analytics(group_id: Optional[UUID] = None) -> AnalyticsData:
    try:
        return settleup_service.get_analytics(group_id)
    except SettleUpError as e:
        raise _http_error(e)


@app.get("/export.csv", response_class=PlainTextResponse, tags=["Reports"])
def export_csv(group_id: Optional[UUID] = None) -> PlainTextResponse:
    try:
        csv_text = settleup_service.export_csv(group_id)
    except SettleUpError as e:
        raise _http_error(e)
    return PlainTextResponse(csv_text, media_type="text/csv")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
