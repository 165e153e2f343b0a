"""Provides an asynchronous gRPC server interceptor for centralized exception handling."""

from typing import Any, AsyncIterator, Awaitable, Callable

import grpc
import grpc.aio

from mdns_discovery.threading.error_watcher import ErrorWatcher


class AsyncGrpcExceptionInterceptor(grpc.aio.ServerInterceptor):  # type: ignore[misc]
    """
    A gRPC interceptor that reports unexpected exceptions raised by async
    server methods to an `ErrorWatcher` and fails the call with UNKNOWN.

    Aborts issued by the handler itself (e.g. INVALID_ARGUMENT) pass through
    untouched. Only unary-unary and unary-stream methods are wrapped; this
    server exposes no client-streaming methods.
    """

    def __init__(self, watcher: ErrorWatcher):
        """Initializes the AsyncGrpcExceptionInterceptor.

        Args:
            watcher: An ErrorWatcher instance to report exceptions to.
        """
        self.__error_cb = watcher.on_exception_seen

        super().__init__()

    async def intercept_service(
        self,
        continuation: Callable[
            [grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]
        ],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler: grpc.RpcMethodHandler = await continuation(
            handler_call_details
        )

        # Unknown method. Let gRPC report UNIMPLEMENTED.
        if handler is None:
            return None

        if handler.unary_unary is not None:
            handler = handler._replace(
                unary_unary=self._wrap_unary_unary(
                    handler.unary_unary, handler_call_details
                )
            )
        if handler.unary_stream is not None:
            handler = handler._replace(
                unary_stream=self._wrap_unary_stream(
                    handler.unary_stream, handler_call_details
                )
            )

        return handler

    def _wrap_unary_unary(
        self,
        method: Callable[[Any, grpc.aio.ServicerContext], Awaitable[Any]],
        call_details: grpc.HandlerCallDetails,
    ) -> Callable[[Any, grpc.aio.ServicerContext], Awaitable[Any]]:
        """Wraps a unary-unary RPC method to provide exception handling."""

        async def wrapper(request: Any, context: grpc.aio.ServicerContext) -> Any:
            try:
                return await method(request, context)
            except Exception as e:
                await self._handle_exception(e, call_details, context)
                raise

        return wrapper

    def _wrap_unary_stream(
        self,
        method: Callable[[Any, grpc.aio.ServicerContext], AsyncIterator[Any]],
        call_details: grpc.HandlerCallDetails,
    ) -> Callable[[Any, grpc.aio.ServicerContext], AsyncIterator[Any]]:
        """Wraps a unary-stream RPC method to provide exception handling."""

        async def wrapper(
            request: Any, context: grpc.aio.ServicerContext
        ) -> AsyncIterator[Any]:
            try:
                async for response in method(request, context):
                    yield response
            except Exception as e:
                await self._handle_exception(e, call_details, context)
                raise

        return wrapper

    async def _handle_exception(
        self,
        e: Exception,
        call_details: grpc.HandlerCallDetails,
        context: grpc.aio.ServicerContext,
    ) -> None:
        """Reports `e` and aborts the call, unless `e` is an abort itself."""
        if isinstance(e, (grpc.aio.AbortError, StopAsyncIteration)):
            raise e
        if isinstance(e, AssertionError):
            raise e

        self.__error_cb(e)
        await context.abort(
            grpc.StatusCode.UNKNOWN,
            f"Exception in {call_details.method}: {e}",
        )
