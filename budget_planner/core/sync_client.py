"""Budget sync API client.

Async HTTP client for a remote budget backend. Implements the same
persistence interface as the local repositories so a session can be pointed
at either. Handles authentication and maps HTTP failures to
:class:`SyncAPIError`.
"""

from decimal import Decimal
from typing import Any, Optional
from urllib.parse import quote

import httpx

from budget_planner.models.schemas import MonthlyBudget

DEFAULT_TIMEOUT = 30.0


class SyncAPIError(Exception):
    """Base exception for budget sync API errors."""

    def __init__(self, status_code: int, error_id: str, name: str, detail: str):
        self.status_code = status_code
        self.error_id = error_id
        self.name = name
        self.detail = detail
        super().__init__(f"Sync API Error [{status_code}] {name}: {detail}")


class BudgetSyncClient:
    """Async client for the budget sync API."""

    def __init__(self, base_url: str, api_token: str):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.api_token}"},
                timeout=DEFAULT_TIMEOUT,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json_data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and return the ``data`` payload."""
        try:
            response = await self.client.request(
                method=method,
                url=path,
                params=params,
                json=json_data,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json() if e.response.content else {}
            except ValueError:
                # proxies and gateways answer with HTML or plain text
                body = {}
            error = body.get("error") if isinstance(body, dict) else None
            if not isinstance(error, dict):
                error = {}
            raise SyncAPIError(
                status_code=e.response.status_code,
                error_id=error.get("id", str(e.response.status_code)),
                name=error.get("name", "unknown_error"),
                detail=error.get("detail", str(e)),
            ) from e
        except httpx.TimeoutException as e:
            raise SyncAPIError(
                status_code=408,
                error_id="timeout",
                name="request_timeout",
                detail="Request to the sync API timed out. Please try again.",
            ) from e
        except httpx.TransportError as e:
            raise SyncAPIError(
                status_code=503,
                error_id="connection",
                name="connection_error",
                detail=f"Cannot reach the sync API: {e}",
            ) from e

        if not response.content:
            return {}
        return response.json().get("data", {})

    # --- Monthly budgets ---

    async def get_monthly_budgets(self, month: int, year: int) -> list[MonthlyBudget]:
        """Get every category budget for a month."""
        data = await self._request("GET", f"/budgets/{year}/months/{month}")
        return [
            MonthlyBudget(**{**b, "month": month, "year": year})
            for b in data.get("budgets", [])
        ]

    async def add_category(self, name: str, amount: Decimal, month: int, year: int) -> None:
        """Create a category budget for a month."""
        await self._request(
            "POST",
            f"/budgets/{year}/months/{month}/categories",
            json_data={"category": {"name": name, "amount": str(amount)}},
        )

    async def update_category_amount(
        self, category: str, amount: Decimal, month: int, year: int
    ) -> None:
        """Set a category's amount for a month, creating it if needed."""
        await self._request(
            "PATCH",
            f"/budgets/{year}/months/{month}/categories/{quote(category, safe='')}",
            json_data={"category": {"amount": str(amount)}},
        )

    async def delete_monthly_budget(
        self,
        category: str,
        from_month: int,
        year: int,
        include_future_months: bool = False,
    ) -> None:
        """Delete a category from a month, optionally through December."""
        await self._request(
            "DELETE",
            f"/budgets/{year}/months/{from_month}/categories/{quote(category, safe='')}",
            params={"include_future_months": str(include_future_months).lower()},
        )

    async def save_current_state(self) -> None:
        """Ask the backend to commit pending writes."""
        await self._request("POST", "/sync")
