"""
revsplit.rpc.app — FastAPI app over one splitter.

Routes
------
  GET  /healthz, /version
  GET  /splitter            summary (totals, members)
  GET  /members/{id}        one membership, with its metadata URI
  GET  /simulate            payouts preview (push: ?amount=&source=, pull: claimables)
  POST /deposit             {caller, source}
  POST /register            {caller}
  POST /claim               {caller, ids}
  POST /distribute          {caller, source?, amount?, native?}
  GET  /metrics             Prometheus exposition

Split errors are returned as their `to_dict()` with a 4xx status.
Handlers are plain `def`: FastAPI runs them in its threadpool and the host
lock serialises them; reads go through `Host.view()` so a GET never sees
a POST that is still in flight.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .. import metrics
from ..errors import (AmountOverflowError, AuthorizationError,
                      EmptyOperationError, SplitError, StateError,
                      TransferError, UnknownMembershipError,
                      UnsupportedOperationError, error_to_dict)
from ..metadata import token_uri
from ..splitter import Splitter
from ..types.address import to_address, to_hex
from ..version import __version__
from .models import (AmountView, CallerRequest, ClaimRequest, DepositRequest,
                     DistributeRequest, ErrorView, MemberView, PayoutView)

log = logging.getLogger(__name__)

_STATUS = (
    (AuthorizationError, 403),
    (UnknownMembershipError, 404),
    (UnsupportedOperationError, 405),
    (EmptyOperationError, 409),
    (TransferError, 409),
    (StateError, 409),
    (AmountOverflowError, 422),
)


def status_for(err: SplitError) -> int:
    for cls, status in _STATUS:
        if isinstance(err, cls):
            return status
    return 400


def _payouts(payouts: List[Any]) -> List[PayoutView]:
    return [PayoutView(**p.to_dict()) for p in payouts]


def create_app(splitter: Splitter) -> FastAPI:
    app = FastAPI(title="revsplit", version=__version__, docs_url=None, redoc_url=None)

    @app.exception_handler(SplitError)
    async def _split_error(request: Request, exc: SplitError) -> JSONResponse:
        status = status_for(exc)
        log.info("http %s %s -> %d %s", request.method, request.url.path, status, exc.code)
        return JSONResponse(ErrorView(**error_to_dict(exc)).model_dump(), status_code=status)

    @app.get("/healthz")
    def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/version")
    def version() -> Dict[str, str]:
        return {"version": __version__}

    @app.get("/splitter")
    def summary() -> Dict[str, Any]:
        return splitter.summary()

    @app.get("/members/{membership_id}", response_model=MemberView)
    def member(membership_id: int) -> MemberView:
        with splitter.host.view():
            pull = splitter.kind() == "pull"
            return MemberView(
                id=membership_id,
                owner=to_hex(splitter.owner_of(membership_id)),
                weight=splitter.weight_of(membership_id),
                claimed=splitter.claimed_of(membership_id) if pull else None,
                claimable=splitter.claimable_tokens(membership_id) if pull else None,
                token_uri=token_uri(splitter, membership_id),
            )

    @app.get("/simulate", response_model=List[PayoutView])
    def simulate(amount: Optional[int] = None, source: Optional[str] = None, native: bool = False) -> List[PayoutView]:
        src = to_address(source) if source else None
        with splitter.host.view():
            if splitter.kind() == "pull":
                return _payouts(splitter.preview())
            if native:
                return _payouts(splitter.simulate_native())
            return _payouts(splitter.simulate(source=src, amount=amount))

    @app.post("/deposit", response_model=AmountView)
    def deposit(req: DepositRequest) -> AmountView:
        return AmountView(amount=splitter.deposit(to_address(req.caller), to_address(req.source)))

    @app.post("/register", response_model=AmountView)
    def register(req: CallerRequest) -> AmountView:
        return AmountView(amount=splitter.register(to_address(req.caller)))

    @app.post("/claim", response_model=AmountView)
    def claim(req: ClaimRequest) -> AmountView:
        caller = to_address(req.caller)
        if len(req.ids) == 1:
            return AmountView(amount=splitter.claim(caller, req.ids[0]))
        return AmountView(amount=splitter.claim_many(caller, req.ids))

    @app.post("/distribute", response_model=List[PayoutView])
    def distribute(req: DistributeRequest) -> List[PayoutView]:
        caller = to_address(req.caller)
        if req.native:
            return _payouts(splitter.distribute_native(caller))
        src = to_address(req.source) if req.source else None
        return _payouts(splitter.distribute(caller, source=src, amount=req.amount))

    @app.get("/metrics")
    def prometheus_metrics() -> PlainTextResponse:
        return PlainTextResponse(metrics.generate_latest_text(), media_type=metrics.CONTENT_TYPE_LATEST)

    return app


__all__ = ["create_app", "status_for"]
