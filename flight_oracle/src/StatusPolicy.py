"""Status policies: decide which status code the oracles report.

A policy is any callable taking a :class:`StatusRequest` and returning a
:class:`StatusCode`, either directly or as an awaitable. The relay calls it
once per request and reports the same code from every oracle.

Built-in policies are registered by name for the CLI:

.. code-block:: python

    policy = get_policy("fixed", PolicyOptions(status_code=StatusCode.ON_TIME))
    code = await resolve_status(policy, request)

    # Any plain function works as well
    relay = ResponseRelay(contract, pool, policy=lambda request: StatusCode.ON_TIME)
"""

from __future__ import annotations

import inspect
import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import ClassVar, Union

import httpx

from .StatusRequest import StatusCode, StatusRequest

logger = logging.getLogger(__name__)

StatusPolicyFn = Callable[[StatusRequest], Union[StatusCode, int, Awaitable[Union[StatusCode, int]]]]


@dataclass
class PolicyOptions:
    """Options shared by the built-in policies.

    :ivar status_code: Code reported by the fixed policy.
    :ivar status_url: URL template for the HTTP policy, formatted with
        ``airline``, ``flight``, ``timestamp`` and ``index``.
    :ivar timeout: HTTP request timeout in seconds.
    :ivar seed: Optional seed for the random policy.
    """

    status_code: StatusCode = StatusCode.LATE_WEATHER
    status_url: str | None = None
    timeout: float = 10.0
    seed: int | None = None


class BaseStatusPolicy(ABC):
    """Abstract base class for named status policies.

    :cvar name: Unique identifier used on the command line.
    """

    name: ClassVar[str] = ""

    @abstractmethod
    def __call__(
        self, request: StatusRequest
    ) -> StatusCode | Awaitable[StatusCode]:
        """Choose the status code for a request."""
        pass

    @classmethod
    def from_options(cls, options: PolicyOptions) -> BaseStatusPolicy:
        """Build the policy from shared options."""
        return cls()

    def describe(self) -> str:
        return self.name


# Registry of available policies (populated by @register_policy)
POLICY_REGISTRY: dict[str, type[BaseStatusPolicy]] = {}


def register_policy(cls: type[BaseStatusPolicy]) -> type[BaseStatusPolicy]:
    """Decorator to register a policy class in the global registry.

    :param cls: Policy class to register.
    :returns: The registered class (unchanged).
    :raises ValueError: If the policy has no name defined.
    """
    if not cls.name:
        raise ValueError(f"Policy {cls.__name__} must define a 'name' class variable")
    POLICY_REGISTRY[cls.name] = cls
    return cls


@register_policy
class FixedStatusPolicy(BaseStatusPolicy):
    """Reports the same status code for every request.

    This is a test placeholder: it does not look at the flight at all.
    """

    name = "fixed"

    def __init__(self, status_code: StatusCode = StatusCode.LATE_WEATHER) -> None:
        self.status_code = StatusCode(status_code)

    @classmethod
    def from_options(cls, options: PolicyOptions) -> FixedStatusPolicy:
        return cls(options.status_code)

    def __call__(self, request: StatusRequest) -> StatusCode:
        return self.status_code

    def describe(self) -> str:
        return f"{self.name} ({self.status_code.label})"


@register_policy
class RandomStatusPolicy(BaseStatusPolicy):
    """Reports one randomly chosen status code per request."""

    name = "random"

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._codes = list(StatusCode)

    @classmethod
    def from_options(cls, options: PolicyOptions) -> RandomStatusPolicy:
        return cls(options.seed)

    def __call__(self, request: StatusRequest) -> StatusCode:
        return self._rng.choice(self._codes)


@register_policy
class HttpStatusPolicy(BaseStatusPolicy):
    """Fetches the flight status from an HTTP endpoint.

    The endpoint must answer with JSON holding either ``status_code``
    (integer) or ``status`` (name such as ``"late-weather"``). Any failure
    is reported as ``UNKNOWN``.

    A shared ``httpx.AsyncClient`` is reused across requests.

    :ivar url_template: URL with ``{airline}``, ``{flight}``, ``{timestamp}``
        and ``{index}`` placeholders.
    :ivar timeout: Request timeout in seconds.
    """

    name = "http"

    # Class-level shared HTTP client
    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    def __init__(
        self,
        url_template: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP policy.

        :param url_template: Status endpoint URL template.
        :param timeout: Request timeout in seconds (default: 10).
        :param client: Optional client; defaults to the shared client.
        :raises ValueError: If no URL template is given.
        """
        if not url_template:
            raise ValueError("The http status policy requires a status URL")
        self.url_template = url_template
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_options(cls, options: PolicyOptions) -> HttpStatusPolicy:
        return cls(options.status_url or "", timeout=options.timeout)

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Get or create the shared HTTP client."""
        if cls._shared_client is None or cls._shared_client.is_closed:
            cls._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
                follow_redirects=True,
            )
        return cls._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client."""
        if cls._shared_client is not None and not cls._shared_client.is_closed:
            await cls._shared_client.aclose()
            cls._shared_client = None

    def build_url(self, request: StatusRequest) -> str:
        return self.url_template.format(
            airline=request.airline,
            flight=request.flight,
            timestamp=request.timestamp,
            index=request.request_index,
        )

    async def __call__(self, request: StatusRequest) -> StatusCode:
        url = self.build_url(request)
        client = self._client or self.get_shared_client()
        try:
            response = await client.get(url, timeout=self.timeout)
            if not response.is_success:
                logger.warning(
                    f"Status lookup for {request.flight} failed: HTTP {response.status_code}"
                )
                return StatusCode.UNKNOWN
            payload = response.json()
            if "status_code" in payload:
                return StatusCode.parse(int(payload["status_code"]))
            return StatusCode.parse(str(payload["status"]))
        except httpx.RequestError as e:
            logger.warning(f"Status lookup for {request.flight} failed: {e}")
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Invalid status payload for {request.flight}: {e}")
        return StatusCode.UNKNOWN

    def describe(self) -> str:
        return f"{self.name} ({self.url_template})"


def get_policy(name: str, options: PolicyOptions | None = None) -> BaseStatusPolicy:
    """Get a policy instance by name.

    :param name: Policy name (e.g., "fixed", "random", "http").
    :param options: Shared policy options.
    :returns: Policy instance.
    :raises ValueError: If the policy name is unknown or options are invalid.
    """
    if name not in POLICY_REGISTRY:
        available = ", ".join(sorted(POLICY_REGISTRY.keys()))
        raise ValueError(f"Unknown status policy '{name}'. Available: {available}")
    return POLICY_REGISTRY[name].from_options(options or PolicyOptions())


def get_available_policies() -> list[str]:
    """Get sorted list of registered policy names."""
    return sorted(POLICY_REGISTRY.keys())


async def resolve_status(policy: StatusPolicyFn, request: StatusRequest) -> StatusCode:
    """Call a policy and normalize its result to a :class:`StatusCode`.

    :param policy: Sync or async policy callable.
    :param request: Request to decide a status for.
    :returns: The chosen status code.
    :raises ValueError: If the policy returns an unknown code.
    """
    result = policy(request)
    if inspect.isawaitable(result):
        result = await result
    return StatusCode(result)
