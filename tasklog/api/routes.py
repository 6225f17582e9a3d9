"""
Request routing for the tasklog API.

``RequestHandler`` takes a normalized ``ApiRequest`` and returns an
``ApiResponse``; it knows nothing about the HTTP server it is mounted on.
Order of work per request: preflight -> authenticate -> match route ->
open one store session -> task service.
"""
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from tasklog.api.http import ApiRequest, ApiResponse
from tasklog.api.schemas import ErrorResponse
from tasklog.config import settings
from tasklog.services.auth import CredentialVerifier
from tasklog.services.errors import AuthenticationFailure, RouteNotFound, TaskLogError
from tasklog.services.pagination import PageRequest
from tasklog.services.store import StoreFactory
from tasklog.services.task_service import TaskService

logger = logging.getLogger("tasklog.api")

ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]

# Placeholder segment for an integer task id
ID = "{id}"
MAX_ID = 2 ** 63 - 1

Operation = Callable[[ApiRequest, TaskService, Optional[int]], Awaitable[ApiResponse]]

# Ordered, first match wins
ROUTES: List[Tuple[str, Tuple[str, ...], str]] = [
    ("GET", ("tasks",), "list_tasks"),
    ("POST", ("tasks",), "create_task"),
    ("PUT", ("tasks", ID), "update_task"),
    ("DELETE", ("tasks", ID), "delete_task"),
    ("GET", ("logs",), "list_logs"),
]


def _error(status_code: int, message: str) -> ApiResponse:
    return ApiResponse(status_code=status_code, body=ErrorResponse(error=message).model_dump())


def _parse_id(segment: str) -> Optional[int]:
    """Plain ASCII digits within the signed 64-bit range, else None."""
    if not (segment.isascii() and segment.isdigit()):
        return None
    task_id = int(segment)
    if task_id > MAX_ID:
        return None
    return task_id


def match_route(method: str, segments: Sequence[str]) -> Tuple[str, Optional[int]]:
    """Return the operation name and task id (if the shape has one) for a request."""
    for route_method, shape, operation in ROUTES:
        if route_method != method or len(shape) != len(segments):
            continue

        task_id = None
        for expected, actual in zip(shape, segments):
            if expected == ID:
                task_id = _parse_id(actual)
                if task_id is None:
                    break
            elif expected != actual:
                break
        else:
            return operation, task_id

    raise RouteNotFound(method, "/".join(segments))


class RequestHandler:
    """Authenticates, routes and serves one request at a time; holds no per-request state."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        store_factory: StoreFactory,
        *,
        default_page_limit: Optional[int] = None,
        max_page_limit: Optional[int] = None,
        cors_allowed_origins: Optional[List[str]] = None,
        cors_allowed_headers: Optional[List[str]] = None,
    ):
        self.verifier = verifier
        self.store_factory = store_factory
        self.default_page_limit = default_page_limit or settings.default_page_limit
        self.max_page_limit = max_page_limit or settings.max_page_limit
        self.cors_allowed_origins = cors_allowed_origins or settings.cors_allowed_origins
        self.cors_allowed_headers = cors_allowed_headers or settings.cors_allowed_headers

    async def __call__(self, request: ApiRequest) -> ApiResponse:
        response = await self._dispatch(request)
        response.headers.update(self.cors_headers(request))
        return response

    def cors_headers(self, request: ApiRequest) -> Dict[str, str]:
        headers = {
            "Access-Control-Allow-Headers": ", ".join(self.cors_allowed_headers),
            "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
        }
        if "*" in self.cors_allowed_origins:
            headers["Access-Control-Allow-Origin"] = "*"
        else:
            origin = request.header("origin")
            if origin and origin in self.cors_allowed_origins:
                headers["Access-Control-Allow-Origin"] = origin
                headers["Vary"] = "Origin"
        return headers

    async def _dispatch(self, request: ApiRequest) -> ApiResponse:
        method = request.method.upper()

        # Preflight never needs credentials
        if method == "OPTIONS":
            return ApiResponse(status_code=200)

        try:
            if not self.verifier.verify(request.header("authorization")):
                raise AuthenticationFailure()

            segments = request.segments()
            logger.info("Request: %s %s", method, segments)
            operation_name, task_id = match_route(method, segments)
            operation: Operation = getattr(self, f"_{operation_name}")

            async with self.store_factory() as store:
                return await operation(request, TaskService(store), task_id)

        except TaskLogError as e:
            if e.status_code >= 500:
                logger.error("%s %s failed: %s", method, request.path, e.message)
            return _error(e.status_code, e.message)
        except Exception:
            logger.exception("Server error on %s %s", method, request.path)
            return _error(500, "Internal server error")

    def _page_request(self, request: ApiRequest) -> PageRequest:
        return PageRequest.from_query(request.query, self.default_page_limit, self.max_page_limit)

    async def _list_tasks(self, request: ApiRequest, service: TaskService, task_id: Optional[int]) -> ApiResponse:
        search = request.query.get("search") or ""
        page = await service.list_tasks(self._page_request(request), search=search)
        return ApiResponse(body=page.model_dump(mode="json", by_alias=True))

    async def _create_task(self, request: ApiRequest, service: TaskService, task_id: Optional[int]) -> ApiResponse:
        task = await service.create_task(request.json_body())
        return ApiResponse(body=task.model_dump(mode="json"))

    async def _update_task(self, request: ApiRequest, service: TaskService, task_id: Optional[int]) -> ApiResponse:
        task = await service.update_task(task_id, request.json_body())
        return ApiResponse(body=task.model_dump(mode="json"))

    async def _delete_task(self, request: ApiRequest, service: TaskService, task_id: Optional[int]) -> ApiResponse:
        await service.delete_task(task_id)
        return ApiResponse(body={"success": True})

    async def _list_logs(self, request: ApiRequest, service: TaskService, task_id: Optional[int]) -> ApiResponse:
        page = await service.list_logs(self._page_request(request))
        return ApiResponse(body=page.model_dump(mode="json", by_alias=True))
