"""
Annict GraphQL client

Thin async wrapper around the Annict GraphQL endpoint. Knows the two viewer
queries used by the bot and turns every transport/protocol failure into
AnnictAPIError. Response shapes are left to the caller.
"""
import logging
from typing import Any

import httpx


logger = logging.getLogger(__name__)

USER_AGENT = "AnnictSlackBot/1.0 (github.com/monchh/annict-slack-bot)"

_WORK_FIELDS = """
      work {
        title
        officialSiteUrl
        image {
          recommendedImageUrl
          facebookOgImageUrl
        }
      }
"""

GET_PROGRAMS_QUERY = """
query GetPrograms {
  viewer {
    programs(unwatched: true, orderBy: {field: STARTED_AT, direction: DESC}) {
      nodes {
        startedAt
        channel {
          name
        }
        episode {
          number
          numberText
          title
        }
%s
      }
    }
  }
}
""" % _WORK_FIELDS

GET_LIBRARY_ENTRIES_QUERY = """
query GetLibraryEntries($seasons: [String!]) {
  viewer {
    libraryEntries(states: [WATCHING], seasons: $seasons) {
      nodes {
%s
        nextEpisode {
          number
          numberText
          title
        }
        nextProgram {
          startedAt
          channel {
            name
          }
        }
      }
    }
  }
}
""" % _WORK_FIELDS


class AnnictAPIError(RuntimeError):
    """Raised when an Annict GraphQL call fails"""
    pass


def create_annict_http_client(
    token: str,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """
    Build the authenticated HTTP client used for Annict calls

    Args:
        token: Annict personal access token
        timeout: Request timeout in seconds
        transport: Optional transport override

    Returns:
        httpx.AsyncClient sending the bearer token and bot User-Agent
    """
    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        headers={
            "Authorization": f"Bearer {token}",
            "User-Agent": USER_AGENT,
        },
    )


class AnnictClient:
    """Executes the viewer queries against the Annict GraphQL API."""

    def __init__(self, http_client: httpx.AsyncClient, endpoint: str) -> None:
        self._http_client = http_client
        self._endpoint = endpoint

    async def get_programs(self) -> dict[str, Any]:
        """Run GetPrograms and return its `data` payload."""
        return await self._execute("GetPrograms", GET_PROGRAMS_QUERY)

    async def get_library_entries(self, seasons: list[str]) -> dict[str, Any]:
        """Run GetLibraryEntries for the given seasons and return its `data` payload."""
        return await self._execute(
            "GetLibraryEntries",
            GET_LIBRARY_ENTRIES_QUERY,
            {"seasons": seasons},
        )

    async def _execute(
        self,
        operation_name: str,
        query: str,
        variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"query": query, "operationName": operation_name}
        if variables:
            payload["variables"] = variables

        logger.debug("Sending %s to %s", operation_name, self._endpoint)
        try:
            response = await self._http_client.post(self._endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AnnictAPIError(
                f"{operation_name}: HTTP {exc.response.status_code} from Annict"
            ) from exc
        except httpx.HTTPError as exc:
            raise AnnictAPIError(
                f"{operation_name}: request failed ({type(exc).__name__}: {exc})"
            ) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise AnnictAPIError(f"{operation_name}: response is not valid JSON") from exc

        if not isinstance(body, dict):
            raise AnnictAPIError(f"{operation_name}: unexpected response body")

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in errors
            )
            raise AnnictAPIError(f"{operation_name}: GraphQL errors: {messages}")

        data = body.get("data")
        return data if isinstance(data, dict) else {}
