from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from decimal import Decimal
import uuid

app = FastAPI(title="Mock Data Platform", version="1.0.0")

TABLES = {}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def reset():
    """Reseed the in-memory tables with the persona accounts"""
    TABLES.clear()
    TABLES["profiles"] = [
        {"id": "agent_cm", "role": "agent", "full_name": "Agence Akwa", "phone": "+237670000001", "email": "akwa@moneyflow.test", "balance": 500000},
        {"id": "user_awa", "role": "user", "full_name": "Awa Ndiaye", "phone": "+237690000001", "email": "awa@moneyflow.test", "balance": 15000},
        {"id": "user_low", "role": "user", "full_name": "Paul Mbarga", "phone": "+237690000002", "email": "paul@moneyflow.test", "balance": 3000},
        {"id": "user_heavy", "role": "user", "full_name": "Chantal Eto", "phone": "+237690000003", "email": "chantal@moneyflow.test", "balance": 5000000},
        {"id": "merchant_boutique", "role": "merchant", "full_name": "Boutique Bonanjo", "phone": "+237650000010", "email": "boutique@moneyflow.test", "balance": 0},
    ]
    TABLES["transfers"] = [
        {"id": str(uuid.uuid4()), "sender_id": "user_heavy", "recipient_phone": "+237690000001", "amount": 1990000, "fees": 19900, "status": "completed", "created_at": _now()},
        {"id": str(uuid.uuid4()), "sender_id": "agent_cm", "recipient_phone": "+237690000002", "amount": 100000, "fees": 1000, "status": "completed", "created_at": _now()},
    ]
    TABLES["withdrawals"] = [
        {"id": str(uuid.uuid4()), "user_id": "agent_cm", "amount": 40000, "status": "completed", "created_at": _now()},
        {"id": str(uuid.uuid4()), "user_id": "agent_cm", "amount": 60000, "status": "pending", "created_at": _now()},
    ]
    TABLES["pending_transfers"] = []
    TABLES["merchant_payments"] = []
    TABLES["notifications"] = []


reset()


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"code": "P0001", "message": message, "details": None, "hint": None})


def _matches(row: dict, field: str, op: str, value: str) -> bool:
    actual = row.get(field)
    if actual is None:
        return False
    actual = str(actual)
    if op == "eq":
        return actual == value
    if op == "gte":
        return actual >= value
    if op == "lt":
        return actual < value
    raise ValueError(f"unsupported operator {op}")


def _group(expression: str):
    for condition in expression.strip("()").split(","):
        field, op, value = condition.split(".", 2)
        yield field, op, value


def _filter(rows: list, params) -> list:
    result = []
    for row in rows:
        keep = True
        for key, expression in params.items():
            if key in ("select", "order", "limit"):
                continue
            if key == "or":
                keep = any(_matches(row, *cond) for cond in _group(expression))
            elif key == "and":
                keep = all(_matches(row, *cond) for cond in _group(expression))
            else:
                op, value = expression.split(".", 1)
                keep = _matches(row, key, op, value)
            if not keep:
                break
        if keep:
            result.append(row)
    if "limit" in params:
        result = result[: int(params["limit"])]
    return result


def _profile(identifier: str):
    for row in TABLES["profiles"]:
        if identifier in (row["id"], row["phone"], row["email"]):
            return row
    return None


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/rest/v1/rpc/process_money_transfer")
async def process_money_transfer(request: Request):
    body = await request.json()
    sender = _profile(body["sender_id"])
    recipient = _profile(body["recipient_identifier"])
    if sender is None or recipient is None:
        return _error("User not found")
    amount, fees = Decimal(str(body["transfer_amount"])), Decimal(str(body["transfer_fees"]))
    if Decimal(str(sender["balance"])) < amount + fees:
        return _error("Insufficient funds")
    sender["balance"] = float(Decimal(str(sender["balance"])) - amount - fees)
    recipient["balance"] = float(Decimal(str(recipient["balance"])) + amount)
    transfer_id = str(uuid.uuid4())
    TABLES["transfers"].append({
        "id": transfer_id,
        "sender_id": sender["id"],
        "recipient_phone": recipient["phone"],
        "amount": float(amount),
        "fees": float(fees),
        "status": "completed",
        "created_at": _now(),
    })
    return JSONResponse(content=transfer_id)


@app.post("/rest/v1/rpc/secure_increment_balance")
async def secure_increment_balance(request: Request):
    body = await request.json()
    profile = _profile(body["target_user_id"])
    if profile is None:
        return _error("User not found")
    new_balance = Decimal(str(profile["balance"])) + Decimal(str(body["amount"]))
    if new_balance < 0:
        return _error("Insufficient funds")
    profile["balance"] = float(new_balance)
    return JSONResponse(content=profile["balance"])


@app.get("/rest/v1/{table}")
def select_rows(table: str, request: Request):
    if table not in TABLES:
        return JSONResponse(status_code=404, content={"message": f"relation {table} does not exist"})
    return JSONResponse(content=_filter(TABLES[table], request.query_params))


@app.post("/rest/v1/{table}")
async def insert_row(table: str, request: Request):
    if table not in TABLES:
        return JSONResponse(status_code=404, content={"message": f"relation {table} does not exist"})
    row = {"id": str(uuid.uuid4()), "created_at": _now(), **(await request.json())}
    TABLES[table].append(row)
    return JSONResponse(status_code=201, content=[row])
