import logging
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import jwt

from .db import Base, engine, SessionLocal
from . import catalog, config, identity, ledger, line_items, schemas, workflows
from .auth import create_access_token, decode_access_token
from .errors import CafeError, StoreError
from .logging_config import configure_logging
from .schemas import ActingIdentity

# Create tables if not existing. Legacy databases go through migration/ first.
Base.metadata.create_all(bind=engine)

configure_logging("cafe", config.get().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Cafe Order Service")


# Dependency to get DB session per request

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@app.exception_handler(CafeError)
async def cafe_error_handler(request: Request, exc: CafeError):
    if isinstance(exc, StoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=int(exc.http_status),
        content={"detail": exc.message, "error": type(exc).__name__, "retryable": exc.retryable},
    )


def get_acting(
    request: Request,
    db: Session = Depends(get_db),
    x_acting_user: Optional[str] = Header(default=None),
) -> ActingIdentity:
    """Resolve the acting identity from a bearer token, falling back to X-Acting-User."""
    login = None
    auth = request.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        token = auth.split(None, 1)[1]
        try:
            login = decode_access_token(token).get("sub")
        except jwt.PyJWTError:
            raise HTTPException(status_code=401, detail="invalid token")
    elif x_acting_user:
        login = x_acting_user

    if not login:
        raise HTTPException(status_code=401, detail="missing acting user header or token")
    # role is re-read so a demotion takes effect on the next request
    try:
        role = identity.get_role(db, login)
    except CafeError:
        raise HTTPException(status_code=401, detail="acting user not found")
    return ActingIdentity(login=login, role=role)


@app.get("/health")
async def health():
    return {"status": "ok"}


# -------------------- Users --------------------

@app.post("/users", response_model=schemas.UserRead, status_code=201)
async def register_user(user: schemas.UserCreate, db: Session = Depends(get_db)):
    created = identity.register(db, user.login, user.password, user.phone)
    return identity.get_user(db, created, created.login)


@app.post("/auth/login")
async def auth_login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    acting = identity.authenticate(db, payload.login, payload.password)
    token = create_access_token(acting.login, acting.role.value)
    return {"access_token": token, "token_type": "bearer", "role": acting.role.value}


@app.get("/users/{login}", response_model=schemas.UserRead)
async def get_user(login: str, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)):
    return identity.get_user(db, acting, login)


@app.put("/users/{login}", response_model=schemas.UserRead)
async def update_user(
    login: str,
    payload: schemas.UserUpdate,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    identity.update_profile(
        db,
        acting,
        login,
        password=payload.password,
        old_password=payload.old_password,
        phone=payload.phone,
        fav_items=payload.fav_items,
        role=payload.role,
    )
    return identity.get_user(db, acting, login)


# -------------------- Menu --------------------

@app.get("/menu", response_model=List[schemas.MenuItemRead])
async def browse_menu(type: Optional[str] = None, db: Session = Depends(get_db)):
    return catalog.list_items(db, type)


@app.get("/menu/{name}", response_model=schemas.MenuItemRead)
async def get_menu_item(name: str, db: Session = Depends(get_db)):
    return catalog.get_item(db, name)


@app.post("/menu", response_model=schemas.MenuItemRead, status_code=201)
async def add_menu_item(
    item: schemas.MenuItemCreate, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)
):
    return catalog.add_item(db, acting, item.item_name, item.type, item.price, item.description, item.image_url)


@app.put("/menu/{name}", response_model=schemas.MenuItemRead)
async def update_menu_item(
    name: str,
    payload: schemas.MenuItemUpdate,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    catalog.update_field(db, acting, name, payload.field, payload.value)
    return catalog.get_item(db, name)


@app.delete("/menu/{name}")
async def delete_menu_item(name: str, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)):
    removed = catalog.delete_item(db, acting, name)
    return {"deleted": name, "orders_adjusted": sorted(removed)}


# -------------------- Orders --------------------

@app.post("/orders", status_code=201)
async def create_order(
    payload: schemas.OrderCreate, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)
):
    if not payload.items:
        return {"orderid": ledger.create_order(db, acting)}
    order_id = workflows.place_order(db, acting, [(i.item_name, i.comment) for i in payload.items])
    if order_id is None:
        raise HTTPException(status_code=400, detail="order has no items with a positive total")
    return {"orderid": order_id}


@app.get("/orders", response_model=List[int])
async def recent_orders(unpaid: bool = False, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)):
    return ledger.recent_orders(db, acting, unpaid_only=unpaid)


@app.get("/orders/recent-day", response_model=List[int])
async def orders_recent_day(
    unpaid: bool = False,
    hours: Optional[int] = None,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    return ledger.orders_since(db, acting, hours=hours, unpaid_only=unpaid)


@app.get("/orders/{order_id}", response_model=schemas.OrderSummary)
async def order_summary(order_id: int, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)):
    return ledger.order_summary(db, acting, order_id)


@app.put("/orders/{order_id}")
async def edit_order(
    order_id: int,
    payload: schemas.OrderEdit,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    cancelled = workflows.edit_order(
        db, acting, order_id, add=[(i.item_name, i.comment) for i in payload.add], remove=payload.remove
    )
    if cancelled:
        return {"orderid": order_id, "cancelled": True}
    return {"orderid": order_id, "cancelled": False, "total": str(ledger.get_total(db, order_id))}


@app.delete("/orders/{order_id}")
async def cancel_order(order_id: int, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)):
    if not ledger.cancel_order(db, acting, order_id):
        raise HTTPException(status_code=503, detail="order could not be cancelled at this time")
    return {"deleted": order_id}


@app.put("/orders/{order_id}/paid")
async def set_paid(
    order_id: int,
    payload: schemas.PaidUpdate,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    ledger.set_paid(db, acting, order_id, payload.paid)
    return {"orderid": order_id, "paid": payload.paid}


@app.post("/orders/{order_id}/items", response_model=schemas.LineItemRead, status_code=201)
async def add_line(
    order_id: int,
    payload: schemas.LineItemAdd,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    return line_items.add_item(db, acting, order_id, payload.item_name, payload.comment)


@app.put("/orders/{order_id}/items/{item_name}", response_model=schemas.LineItemRead)
async def update_line(
    order_id: int,
    item_name: str,
    payload: schemas.LineItemUpdate,
    db: Session = Depends(get_db),
    acting: ActingIdentity = Depends(get_acting),
):
    if payload.comment is not None:
        line_items.set_comment(db, acting, order_id, item_name, payload.comment)
    if payload.ready is not None:
        line_items.set_status(db, acting, order_id, item_name, payload.ready)
    return line_items.get_line(db, order_id, item_name)


@app.delete("/orders/{order_id}/items/{item_name}")
async def remove_line(
    order_id: int, item_name: str, db: Session = Depends(get_db), acting: ActingIdentity = Depends(get_acting)
):
    cancelled = line_items.remove_item(db, acting, order_id, item_name)
    return {"orderid": order_id, "removed": item_name, "order_cancelled": cancelled}
