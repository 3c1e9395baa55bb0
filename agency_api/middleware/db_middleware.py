# agency_api/middleware/db_middleware.py

from agency_api.utils.database import AsyncSessionLocal


class DBSessionMiddleware:
    """
    Opens one AsyncSession per HTTP request and exposes it as request.state.db.
    Work left uncommitted when the request fails is rolled back.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        session = AsyncSessionLocal()
        state["db"] = session
        try:
            await self.app(scope, receive, send)
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
