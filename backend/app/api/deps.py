"""
Request-level dependencies: service context, client IP and size-capped body parsing.
"""

from typing import TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from app.core.errors import DomainError, InvalidInput
from app.services.context import ServiceContext

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_context(request: Request) -> ServiceContext:
    """The process-scoped ServiceContext built in the app lifespan."""
    return request.app.state.context


def get_client_ip(request: Request) -> str:
    headers = request.headers
    forwarded = headers.get("x-forwarded-for", "").split(",")[0].strip()
    ip = headers.get("cf-connecting-ip") or headers.get("x-real-ip") or forwarded
    if ip:
        return ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def read_json_body(
    request: Request,
    schema: type[ModelT],
    max_bytes: int,
    too_large: DomainError,
) -> ModelT:
    """
    Enforce max_bytes before parsing, then validate into schema.
    Checks the declared Content-Length first so oversized bodies are refused
    without buffering them, then the bytes actually received.
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise too_large

    body = await request.body()
    if len(body) > max_bytes:
        raise too_large

    try:
        return schema.model_validate_json(body or b"{}")
    except ValidationError as e:
        details = {
            ".".join(str(part) for part in error["loc"]) or "body": error["msg"]
            for error in e.errors()
        }
        raise InvalidInput("invalid request body", details=details) from e
