"""Mock storefront API over the reveal engine.

This mirrors the storefront's mocked REST handlers: a single demo user whose
collection and ledger live in memory. It only translates HTTP calls into
engine calls and engine errors into status codes.
"""
import asyncio
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pack_components.collection import run_expiry_sweeper
from pack_components.config import EngineConfig
from pack_components.errors import (
    CardNotAvailableError,
    ConfigurationError,
    EmptyPackError,
    InsufficientCreditsError,
    InvalidTransitionError,
    PackEngineError,
    PackNotFoundError,
    PackUnavailableError,
)
from pack_components.reveal import RevealSession
from pack_components.server_classes import (
    AddCreditsRequest,
    PurchasePackRequest,
    RevealAction,
    ShipCardsRequest,
    SortBy,
    SweepRequest,
)
from pack_components.storefront import Storefront
from pack_components.utils.repositories import InMemoryCollectionRepository, InMemoryLedgerRepository

#logging stuff
from pack_logs.loggers import server_logger
from pack_logs.middleware import RequestLoggingMiddleware

# checked in order, so subclasses come before their bases
ERROR_STATUS = (
    (PackNotFoundError, 404),
    (ConfigurationError, 500),
    (InvalidTransitionError, 409),
    (CardNotAvailableError, 400),
    (EmptyPackError, 400),
    (InsufficientCreditsError, 400),
    (PackUnavailableError, 400),
)


def _status_for(error: PackEngineError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 400


def create_app(storefront: Optional[Storefront] = None, config: Optional[EngineConfig] = None) -> FastAPI:
    config = config or EngineConfig.from_env()
    if storefront is None:
        storefront = Storefront.build(
            InMemoryCollectionRepository(),
            InMemoryLedgerRepository(balance=config.starting_credits),
            config=config,
        )

    app = FastAPI(title="Pack Reveal Storefront")
    app.state.storefront = storefront
    app.state.sessions = {}
    app.state.sweeper = None
    app.state.sweeper_stop = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware, logger=server_logger)

    @app.exception_handler(PackEngineError)
    async def engine_error_handler(request: Request, exc: PackEngineError):
        status = _status_for(exc)
        if status >= 500:
            #log code
            server_logger.error("engine_configuration_error", path=request.url.path, error=str(exc))
            message = "The storefront is misconfigured, please try again later"
        else:
            server_logger.warning(
                "engine_request_rejected",
                path=request.url.path,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            message = str(exc)
        return JSONResponse(status_code=status, content={"success": False, "error": message})

    # startup functions
    @app.on_event("startup")
    async def startup_event():
        app.state.sweeper_stop = asyncio.Event()
        app.state.sweeper = asyncio.create_task(run_expiry_sweeper(
            storefront.collection,
            config.sweep_interval_seconds,
            stop_event=app.state.sweeper_stop,
            on_sweep=lambda result: server_logger.info("startup_sweeper_converted", **result.to_dict()),
        ))
        server_logger.info("startup_packs_loaded", count=len(storefront.packs), packs=sorted(storefront.packs))

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.sweeper_stop is not None:
            app.state.sweeper_stop.set()
            await app.state.sweeper

    def _session(session_id: str) -> RevealSession:
        session = app.state.sessions.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"No reveal session {session_id}")
        return session

    @app.get("/packs")
    async def list_packs():
        return {"success": True, "data": [p.to_record() for p in storefront.list_packs()]}

    @app.get("/packs/{pack_id}")
    async def get_pack(pack_id: str):
        return {"success": True, "data": storefront.get_pack(pack_id).to_record()}

    @app.post("/packs/purchase", status_code=201)
    async def purchase_pack(req: PurchasePackRequest):
        """Buy a pack and open a reveal session for its cards."""

        #log code
        server_logger.info("purchase_attempt", pack_id=req.pack_id, payment_method=req.payment_method.value)

        purchase = storefront.purchase_pack(req.pack_id, req.payment_method)
        session = storefront.open_reveal(purchase)
        app.state.sessions[session.session_id] = session

        response = purchase.to_dict()
        response["session"] = session.to_dict()
        return response

    @app.get("/reveal/{session_id}")
    async def get_reveal(session_id: str):
        return _session(session_id).to_dict()

    # registered before the generic action route so "finish" is not read as an action
    @app.post("/reveal/{session_id}/finish")
    async def finish_reveal(session_id: str):
        """Complete the reveal (skipping whatever is unseen) and add every card to the collection."""
        session = _session(session_id)
        # the completed session stays, so a retried finish reports zero new cards
        session, committed = storefront.finish_reveal(session)
        app.state.sessions[session_id] = session

        #log code
        server_logger.info("reveal_finished", session_id=session_id, committed=len(committed))

        return {
            "success": True,
            "sessionId": session_id,
            "cards": [c.to_record() for c in committed],
            "committed": len(committed),
        }

    @app.post("/reveal/{session_id}/{action}")
    async def reveal_action(session_id: str, action: RevealAction):
        session = _session(session_id)
        session = getattr(session, action)()
        app.state.sessions[session_id] = session
        return session.to_dict()

    @app.get("/user/cards")
    async def get_my_cards(sort_by: SortBy = "newest"):
        """Get all cards in the demo user's collection."""
        cards = storefront.collection.cards(sort_by=sort_by)
        return {
            "success": True,
            "data": [c.to_record() for c in cards],
            "totalCards": len(cards),
            "totalValue": storefront.collection.collection_value(),
        }

    @app.get("/user/cards/top")
    async def get_top_cards(limit: int = 5):
        return {"success": True, "data": [c.to_record() for c in storefront.collection.top_cards(limit)]}

    @app.post("/user/cards/{card_id}/sell")
    async def sell_card(card_id: str):
        amount = storefront.collection.sell(card_id)
        return {"success": True, "cardId": card_id, "amount": amount, "newBalance": storefront.ledger.balance}

    @app.post("/user/ship")
    async def ship_cards(req: ShipCardsRequest):

        #log code
        server_logger.info("ship_attempt", card_count=len(req.card_ids), shipping_option=req.shipping_option)

        result = storefront.collection.ship(req.card_ids, req.address.model_dump())
        return {"success": True, **result.to_dict()}

    @app.post("/user/sweep")
    async def sweep_expired(req: SweepRequest):
        now = None
        if req.now:
            try:
                now = datetime.fromisoformat(req.now.replace("Z", "+00:00"))
            except ValueError:
                raise HTTPException(status_code=400, detail=f"Bad timestamp '{req.now}'")
            if now.tzinfo is None:
                now = now.replace(tzinfo=timezone.utc)
        result = storefront.collection.sweep_expired(now)
        return {"success": True, **result.to_dict()}

    @app.get("/user/balance")
    async def get_balance():
        return {"success": True, "credits": storefront.ledger.balance}

    @app.post("/user/credits")
    async def add_credits(req: AddCreditsRequest):
        transaction = storefront.add_credits(req.amount)
        return {
            "success": True,
            "creditsAdded": req.amount,
            "newBalance": storefront.ledger.balance,
            "transaction": transaction.to_record(),
        }

    @app.get("/user/transactions")
    async def get_transactions(limit: Optional[int] = None):
        return {"success": True, "data": [t.to_record() for t in storefront.ledger.transactions(limit)]}

    return app


app = create_app()
