"""
Controller Base Classes

Optional bases for class-based middleware and controllers.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from ..http import Request, Response


class BaseMiddleware(ABC):
    """
    Base class for container-resolved middleware.

    Subclasses implement ``handler``; it may be a plain method or a
    coroutine. Sync raises and async failures both reach the error handler.

    Example:
        class RequireJson(BaseMiddleware):
            def handler(self, request, response, next):
                if request.header("content-type") != "application/json":
                    raise ValueError("JSON expected")
                next()
    """

    @abstractmethod
    def handler(
        self,
        request: Request,
        response: Response,
        next: Callable[[Optional[BaseException]], None],
    ) -> Any:
        ...


class Controller:
    """
    Base Controller class.

    Subclassing is optional; it lets ``MetadataRegistry.register_class``
    pick up the class-level configuration below.

    Class Attributes:
        prefix: Base path for all routes (e.g., "/users")
        middleware: Middleware run before every action of the controller

    Example:
        class UsersController(Controller):
            prefix = "/users"
            middleware = [audit]

            def __init__(self, repo: UserRepo):
                self.repo = repo

            @GET("/")
            async def index(self, request, response, next):
                return await self.repo.list_all()
    """

    prefix: str = "/"
    middleware: List[Any] = []
