"""
Header policy for recorded HTTP traffic.

This module filters sensitive headers out of recordings, merges header maps
and resolves dynamically sourced header values (environment variables,
static values or arbitrary callables).
"""

import inspect
import logging
import os
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Iterable, Mapping, Optional, Set, TypeAlias, Union

from . import utils

logger = logging.getLogger(__name__)

# Headers that are never written to disk
DEFAULT_EXCLUDED_HEADERS: tuple[str, ...] = (
    "authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "x-auth-token",
    "access-token",
    "refresh-token",
    "bearer",
    "x-csrf-token",
    "x-xsrf-token",
)


class HeaderSource(ABC):
    """
    Source of a dynamically resolved header value.

    resolve() may raise: the header is then omitted from the resolved map.
    """

    @abstractmethod
    def resolve(self) -> Optional[str]:
        """Return the header value, or None/empty string if it is not available."""
        raise NotImplementedError


class StaticHeaderSource(HeaderSource):
    """Header source with a fixed value."""

    def __init__(self, value: str):
        self.value = value

    def resolve(self) -> Optional[str]:
        return self.value

    def __repr__(self) -> str:
        return f"StaticHeaderSource({self.value!r})"


class EnvHeaderSource(HeaderSource):
    """
    Header source that reads an environment variable.

    Args:
        name: Environment variable name
        default: Value to use if the variable is not set (default None, meaning "absent")
        dotenvPath: Optional dotenv file loaded into the environment on first resolve
    """

    def __init__(self, name: str, default: Optional[str] = None, dotenvPath: Optional[str] = None):
        self.name = name
        self.default = default
        self.dotenvPath = dotenvPath
        self._dotenvLoaded = False

    def resolve(self) -> Optional[str]:
        if self.dotenvPath is not None and not self._dotenvLoaded:
            utils.loadDotenv(self.dotenvPath)
            self._dotenvLoaded = True

        value = os.environ.get(self.name, self.default)
        if value is None:
            raise KeyError(f"Environment variable {self.name} is not set")
        return value

    def __repr__(self) -> str:
        return f"EnvHeaderSource({self.name!r})"


HeaderSourceLike: TypeAlias = Union[
    HeaderSource,
    str,
    Callable[[], Optional[str]],
    Callable[[], Awaitable[Optional[str]]],
]


def filterHeaders(headers: Mapping[str, str], excludedHeaders: Set[str]) -> Dict[str, str]:
    """
    Return a copy of headers without the excluded ones.

    Keys are compared lowercased, values are left untouched.

    Args:
        headers: Header map to filter
        excludedHeaders: Set of lowercased header names to drop

    Returns:
        New header dictionary
    """
    return {key: value for key, value in headers.items() if key.lower() not in excludedHeaders}


def createExcludedHeadersSet(
    defaultHeaders: Iterable[str] = DEFAULT_EXCLUDED_HEADERS,
    customHeaders: Optional[Iterable[str]] = None,
) -> Set[str]:
    """Union the built-in exclusion list with caller supplied names, lowercased."""
    excluded = {header.lower() for header in defaultHeaders}
    if customHeaders:
        excluded.update(header.lower() for header in customHeaders)
    return excluded


def mergeHeaders(*headerMaps: Optional[Mapping[str, str]]) -> Dict[str, str]:
    """Merge header maps, later maps win on key conflicts."""
    merged: Dict[str, str] = {}
    for headerMap in headerMaps:
        if headerMap:
            merged.update(headerMap)
    return merged


async def resolveHeaderSource(source: HeaderSourceLike) -> Optional[str]:
    """
    Resolve a single header source to its value.

    Accepts HeaderSource instances, plain strings and zero-argument
    callables (sync or async).
    """
    if isinstance(source, str):
        return source
    if isinstance(source, HeaderSource):
        return source.resolve()

    value = source()
    if inspect.isawaitable(value):
        value = await value
    return value


async def resolveHeaders(headerSources: Optional[Mapping[str, HeaderSourceLike]]) -> Dict[str, str]:
    """
    Resolve configured dynamic headers.

    A source that fails, or resolves to an empty value, is omitted from the
    result instead of failing the whole resolution.

    Args:
        headerSources: Mapping of header name to its source

    Returns:
        Dictionary of resolved header values
    """
    if not headerSources:
        return {}

    resolved: Dict[str, str] = {}
    for name, source in headerSources.items():
        try:
            value = await resolveHeaderSource(source)
        except Exception as e:
            logger.debug(f"Header {name} could not be resolved, skipping: {type(e).__name__}")
            continue

        if value:
            resolved[name] = str(value)

    return resolved
