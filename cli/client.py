from __future__ import annotations

from typing import Any, Dict, List, NoReturn, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the scale log service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def log_reading(self, value: float, recorded_at: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"value": value}
        if recorded_at:
            body["recordedAt"] = recorded_at
        return self._request("POST", "/reading", json=body)

    def trigger(self) -> Dict[str, Any]:
        return self._request("POST", "/trigger")

    def get_summary(self, day: Optional[str] = None) -> Dict[str, Any]:
        params = {"date": day} if day else None
        return self._request("GET", "/summary", params=params)

    def get_summary_all(self) -> Dict[str, Any]:
        return self._request("GET", "/summary-all")

    def get_chart(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/summary-chart")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.HTTPError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> NoReturn:
        message: str | None = None
        try:
            data = exc.response.json()
            message = data.get("message")
        except ValueError:
            message = exc.response.text.strip()
        text = (
            f"Request failed with status {exc.response.status_code}: {message or 'no message provided.'}"
        )
        typer.secho(text, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
