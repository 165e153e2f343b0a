"""Provides utility functions for classifying gRPC errors and retry delays."""

from __future__ import annotations

import asyncio

import grpc
from google.rpc.status_pb2 import Status


def get_grpc_status_code(error: Exception) -> grpc.StatusCode | None:
    """Extracts the gRPC status code from a gRPC exception.

    Args:
        error: The exception, potentially a gRPC error.

    Returns:
        The `grpc.StatusCode` if the error is a gRPC error and a status code
        can be extracted, otherwise `None`.
    """
    from grpc_status import rpc_status

    if isinstance(error, grpc.aio.AioRpcError):
        return error.code()

    if not isinstance(error, grpc.RpcError) or not isinstance(error, grpc.Call):
        return None

    # Prefer the rich status carried in trailing metadata, when present.
    status: Status | None = rpc_status.from_call(error)
    if status is not None:
        for code in grpc.StatusCode:
            if code.value[0] == status.code:
                return code

    return error.code()


def is_server_unavailable_error(error: Exception) -> bool:
    """Checks if an exception means the agent could not be reached.

    This covers the `UNAVAILABLE` and `DEADLINE_EXCEEDED` status codes.
    """
    return get_grpc_status_code(error) in (
        grpc.StatusCode.UNAVAILABLE,
        grpc.StatusCode.DEADLINE_EXCEEDED,
    )


async def delay_before_retry(delay_seconds: float) -> None:
    """Waits `delay_seconds` before the next attempt."""
    await asyncio.sleep(delay_seconds)
