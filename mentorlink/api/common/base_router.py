from functools import partialmethod
from typing import Any, Callable, List, Optional

from fastapi import APIRouter, Depends

from mentorlink.api.common.decorators import handle_route_errors, log_route_call

Endpoint = Callable[..., Any]


class BaseRouter:
    """APIRouter wrapper that gives every endpoint route logging and
    service-error translation.

    Routers declare endpoints with ``@router.get(...)`` and friends exactly as
    on a plain APIRouter; ``apply_common_decorators=False`` opts a route out.
    """

    def __init__(
        self,
        router: APIRouter,
        default_tags: Optional[List[str]] = None,
        default_dependencies: Optional[List[Depends]] = None,
    ):
        self.router = router
        self.default_tags = list(default_tags or [])
        self.default_dependencies = list(default_dependencies or [])

    def add_api_route(
        self,
        path: str,
        endpoint: Endpoint,
        *,
        methods: Optional[List[str]] = None,
        tags: Optional[List[str]] = None,
        dependencies: Optional[List[Depends]] = None,
        apply_common_decorators: bool = True,
        **kwargs: Any,
    ) -> None:
        if apply_common_decorators:
            endpoint = log_route_call(handle_route_errors(endpoint))

        self.router.add_api_route(
            path,
            endpoint,
            methods=methods,
            tags=sorted(set(self.default_tags + list(tags or []))),
            dependencies=self.default_dependencies + list(dependencies or []),
            **kwargs,
        )

    def route(
        self, path: str, *, methods: List[str], **kwargs: Any
    ) -> Callable[[Endpoint], Endpoint]:
        def decorator(endpoint: Endpoint) -> Endpoint:
            self.add_api_route(path, endpoint, methods=methods, **kwargs)
            return endpoint

        return decorator

    get = partialmethod(route, methods=["GET"])
    post = partialmethod(route, methods=["POST"])
    put = partialmethod(route, methods=["PUT"])
    patch = partialmethod(route, methods=["PATCH"])
    delete = partialmethod(route, methods=["DELETE"])
