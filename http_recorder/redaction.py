"""
Redaction engine for recorded HTTP traffic.

A redactor turns a RedactionContext (one side of a transaction: request or
response) into a RedactionResult. Results replace the corresponding context
field entirely, a None field means "leave unchanged". Redactors never see
the other side of the transaction.

Built-in strategies:
- HeaderRedactor: mask headers by name
- JsonPathRedactor: mask JSON fields by dot-path
- PatternRedactor: mask regex/string matches in every string leaf and
  every field whose key matches
- UrlParamRedactor: mask query parameters inside URLs found in headers and body
- ConditionalRedactor: apply another redactor only when a predicate holds
- ComposedRedactor: chain redactors, each one sees the previous output

Any other sync or async callable taking a RedactionContext can be used
through FunctionRedactor (see asRedactor()).

Example:
    >>> redactor = compose(
    ...     createHeaderRedactor(["x-request-id"]),
    ...     createJsonRedactor(["user.email", "user.phone"]),
    ...     createPatternRedactor([r"\\b\\d{4}[- ]?\\d{4}[- ]?\\d{4}[- ]?\\d{4}\\b", "password"]),
    ... )
"""

import copy
import inspect
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, TypeAlias, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .exceptions import RedactionError
from .headers import DEFAULT_EXCLUDED_HEADERS, filterHeaders
from .models import RedactionContext, RedactionResult, RedactionType

logger = logging.getLogger(__name__)

DEFAULT_MASK = "***REDACTED***"

RedactionFunction: TypeAlias = Callable[
    [RedactionContext],
    Union[Optional[RedactionResult], Awaitable[Optional[RedactionResult]]],
]
RedactionCondition: TypeAlias = Callable[[RedactionContext], Union[bool, Awaitable[bool]]]
PatternLike: TypeAlias = Union[str, re.Pattern]


# ============================================================================
# Pure masking helpers
# ============================================================================


def maskHeaders(headerNames: Iterable[str], mask: str = DEFAULT_MASK) -> Callable[[Mapping[str, str]], Dict[str, str]]:
    """
    Create a function masking the given headers (case-insensitive).

    Example:
        >>> maskAuth = maskHeaders(["authorization", "x-api-key"])
        >>> maskAuth({"Authorization": "Bearer token", "Content-Type": "application/json"})
        {'Authorization': '***REDACTED***', 'Content-Type': 'application/json'}
    """
    headerSet = {name.lower() for name in headerNames}

    def _mask(headers: Mapping[str, str]) -> Dict[str, str]:
        return {key: (mask if key.lower() in headerSet else value) for key, value in headers.items()}

    return _mask


def _setValueAtPath(data: Any, path: str, value: Any) -> None:
    """Set value at a dot-separated path in place, missing paths are skipped."""
    parts = path.split(".")
    current = data

    for part in parts[:-1]:
        child = _getChild(current, part)
        if not isinstance(child, (dict, list)):
            return
        current = child

    lastPart = parts[-1]
    if isinstance(current, dict):
        if lastPart in current:
            current[lastPart] = value
    elif isinstance(current, list) and lastPart.isdigit():
        index = int(lastPart)
        if index < len(current):
            current[index] = value


def _getChild(container: Any, key: str) -> Any:
    if isinstance(container, dict):
        return container.get(key)
    if isinstance(container, list) and key.isdigit():
        index = int(key)
        return container[index] if index < len(container) else None
    return None


def maskJson(paths: Iterable[str], mask: Any = DEFAULT_MASK) -> Callable[[Any], Any]:
    """
    Create a function masking values at the given dot-notation paths.

    Numeric path parts index into lists ("items.0.token"). Paths that do not
    exist are silently skipped, non-container input is returned unchanged.
    The input is never modified, a deep copy is masked instead.

    Example:
        >>> maskSecrets = maskJson(["user.password", "auth.token"])
        >>> maskSecrets({"user": {"name": "john", "password": "secret"}})
        {'user': {'name': 'john', 'password': '***REDACTED***'}}
    """
    pathList = [path for path in paths if path]

    def _mask(data: Any) -> Any:
        if not isinstance(data, (dict, list)):
            return data

        result = copy.deepcopy(data)
        for path in pathList:
            _setValueAtPath(result, path, mask)
        return result

    return _mask


def maskUrlParams(paramNames: Iterable[str], mask: str = DEFAULT_MASK) -> Callable[[str], str]:
    """
    Create a function masking URL query parameters by name (case-insensitive).

    URLs that cannot be parsed are returned unchanged.

    Example:
        >>> maskToken = maskUrlParams(["token", "api_key"])
        >>> maskToken("https://api.example.com/data?token=abc123&user=john")
        'https://api.example.com/data?token=***REDACTED***&user=john'
    """
    paramSet = {name.lower() for name in paramNames}

    def _mask(url: str) -> str:
        try:
            parts = urlsplit(url)
        except ValueError:
            return url
        if not parts.query:
            return url

        params = parse_qsl(parts.query, keep_blank_values=True)
        if not any(key.lower() in paramSet for key, _ in params):
            return url

        maskedParams = [(key, mask if key.lower() in paramSet else value) for key, value in params]
        return urlunsplit(parts._replace(query=urlencode(maskedParams, safe="*")))

    return _mask


def _compilePatterns(patterns: Iterable[PatternLike]) -> List[re.Pattern]:
    compiled: List[re.Pattern] = []
    for pattern in patterns:
        if isinstance(pattern, re.Pattern):
            compiled.append(pattern)
            continue
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            raise ValueError(f"Invalid redaction pattern {pattern!r}: {e}") from e
    return compiled


# ============================================================================
# Redactor strategies
# ============================================================================


class Redactor(ABC):
    """Base class for redaction strategies."""

    @abstractmethod
    async def redact(self, context: RedactionContext) -> RedactionResult:
        """
        Redact one side of a transaction.

        Args:
            context: Request or response context to redact

        Returns:
            RedactionResult, None fields mean "unchanged"
        """
        raise NotImplementedError

    async def __call__(self, context: RedactionContext) -> RedactionResult:
        return await self.redact(context)


class FunctionRedactor(Redactor):
    """Adapter for plain sync or async redaction callables."""

    def __init__(self, func: RedactionFunction):
        self.func = func

    async def redact(self, context: RedactionContext) -> RedactionResult:
        try:
            result = self.func(context)
            if inspect.isawaitable(result):
                result = await result
        except RedactionError:
            raise
        except Exception as e:
            raise RedactionError(f"Redaction function failed for {context.type} side: {e}", originalError=e) from e

        if result is None:
            return RedactionResult()
        if not isinstance(result, RedactionResult):
            raise RedactionError(f"Redaction function returned {type(result).__name__}, expected RedactionResult")
        return result

    def __repr__(self) -> str:
        return f"FunctionRedactor({getattr(self.func, '__name__', self.func)!r})"


def asRedactor(redaction: Union[Redactor, RedactionFunction]) -> Redactor:
    """Wrap a callable into a Redactor, Redactor instances are returned as-is."""
    if isinstance(redaction, Redactor):
        return redaction
    if not callable(redaction):
        raise TypeError(f"Redaction must be a Redactor or a callable, got {type(redaction).__name__}")
    return FunctionRedactor(redaction)


class HeaderRedactor(Redactor):
    """
    Mask the given headers and drop every other built-in sensitive header.

    Inside the recorder the excluded headers (built-in list included) are
    filtered out before any redactor runs, so only other headers ever reach
    it to be masked. Used on its own, a header both in headerNames and in the
    built-in sensitive list is kept with its value masked.
    """

    def __init__(self, headerNames: Sequence[str], mask: str = DEFAULT_MASK):
        self.headerNames = list(headerNames)
        self.mask = mask
        self._masker = maskHeaders(self.headerNames, mask)
        redactedSet = {name.lower() for name in self.headerNames}
        self._dropSet: Set[str] = {name for name in DEFAULT_EXCLUDED_HEADERS if name not in redactedSet}

    async def redact(self, context: RedactionContext) -> RedactionResult:
        return RedactionResult(headers=filterHeaders(self._masker(context.headers), self._dropSet))


class JsonPathRedactor(Redactor):
    """Mask JSON body fields by dot-path, bodies that are not JSON containers pass through."""

    def __init__(self, paths: Sequence[str], mask: Any = DEFAULT_MASK):
        self.paths = list(paths)
        self.mask = mask
        self._masker = maskJson(self.paths, mask)

    async def redact(self, context: RedactionContext) -> RedactionResult:
        return RedactionResult(body=self._masker(context.body))


class PatternRedactor(Redactor):
    """
    Mask pattern matches in every string of the body.

    String patterns are compiled as case-insensitive regular expressions.
    A dict entry whose key matches any pattern is masked whole, whatever
    its value shape. Headers are left untouched.
    """

    def __init__(self, patterns: Sequence[PatternLike], mask: str = DEFAULT_MASK):
        self.mask = mask
        self.patterns = _compilePatterns(patterns)

    def _isSensitiveKey(self, key: str) -> bool:
        return any(pattern.search(key) for pattern in self.patterns)

    def processValue(self, value: Any) -> Any:
        """Recursively mask a JSON value."""
        if isinstance(value, str):
            for pattern in self.patterns:
                value = pattern.sub(self.mask, value)
            return value

        if isinstance(value, dict):
            return {
                key: (self.mask if self._isSensitiveKey(str(key)) else self.processValue(item))
                for key, item in value.items()
            }

        if isinstance(value, list):
            return [self.processValue(item) for item in value]

        return value

    async def redact(self, context: RedactionContext) -> RedactionResult:
        return RedactionResult(body=self.processValue(context.body))


class UrlParamRedactor(Redactor):
    """
    Mask query parameters by name in URLs embedded in headers and body strings.

    Only values starting with http:// or https:// are treated as URLs, e.g.
    Location and Link headers or "next" links in paginated JSON bodies.
    The request URL itself is the replay matching key and is never changed.
    """

    _URL_RE = re.compile(r"https?://[^\s<>\"',;]+", re.IGNORECASE)

    def __init__(self, paramNames: Sequence[str], mask: str = DEFAULT_MASK):
        self.paramNames = list(paramNames)
        self.mask = mask
        self._masker = maskUrlParams(self.paramNames, mask)

    def _maskText(self, text: str) -> str:
        return self._URL_RE.sub(lambda match: self._masker(match.group(0)), text)

    def _processValue(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._maskText(value)
        if isinstance(value, dict):
            return {key: self._processValue(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._processValue(item) for item in value]
        return value

    async def redact(self, context: RedactionContext) -> RedactionResult:
        return RedactionResult(
            headers={key: self._maskText(value) for key, value in context.headers.items()},
            body=self._processValue(context.body),
        )


class ConditionalRedactor(Redactor):
    """Apply a redactor only if the condition holds for the context."""

    def __init__(self, condition: RedactionCondition, redactor: Union[Redactor, RedactionFunction]):
        self.condition = condition
        self.redactor = asRedactor(redactor)

    async def redact(self, context: RedactionContext) -> RedactionResult:
        try:
            matched = self.condition(context)
            if inspect.isawaitable(matched):
                matched = await matched
        except Exception as e:
            raise RedactionError(f"Redaction condition failed: {e}", originalError=e) from e

        if not matched:
            return RedactionResult()
        return await self.redactor.redact(context)


class ComposedRedactor(Redactor):
    """Run redactors in order, each one receives the context produced by the previous ones."""

    def __init__(self, redactors: Sequence[Union[Redactor, RedactionFunction]]):
        self.redactors = [asRedactor(redactor) for redactor in redactors]

    async def redact(self, context: RedactionContext) -> RedactionResult:
        current = context
        for redactor in self.redactors:
            result = await redactor.redact(current)
            current = current.withResult(result)
        return RedactionResult(headers=current.headers, body=current.body)


def createHeaderRedactor(headerNames: Sequence[str], mask: str = DEFAULT_MASK) -> HeaderRedactor:
    return HeaderRedactor(headerNames, mask)


def createJsonRedactor(paths: Sequence[str], mask: Any = DEFAULT_MASK) -> JsonPathRedactor:
    return JsonPathRedactor(paths, mask)


def createPatternRedactor(patterns: Sequence[PatternLike], mask: str = DEFAULT_MASK) -> PatternRedactor:
    return PatternRedactor(patterns, mask)


def createUrlParamRedactor(paramNames: Sequence[str], mask: str = DEFAULT_MASK) -> UrlParamRedactor:
    return UrlParamRedactor(paramNames, mask)


def createConditionalRedactor(
    condition: RedactionCondition, redactor: Union[Redactor, RedactionFunction]
) -> ConditionalRedactor:
    return ConditionalRedactor(condition, redactor)


def compose(*redactors: Union[Redactor, RedactionFunction]) -> ComposedRedactor:
    """Compose redactors, order matters and is kept as given."""
    return ComposedRedactor(redactors)


# ============================================================================
# Redaction service
# ============================================================================


@dataclass(frozen=True)
class RedactedSide:
    """Headers and body of one transaction side after redaction."""

    headers: Dict[str, str]
    body: Any


class RedactionService:
    """Runs the header policy and the configured redactor over both sides of a transaction."""

    async def applyRedaction(
        self,
        *,
        method: str,
        url: str,
        requestHeaders: Mapping[str, str],
        requestBody: Any,
        responseHeaders: Mapping[str, str],
        responseBody: Any,
        status: int,
        excludedHeaders: Set[str],
        redaction: Optional[Union[Redactor, RedactionFunction]] = None,
    ) -> tuple[RedactedSide, RedactedSide]:
        """
        Redact request and response independently.

        Excluded headers are always filtered out first. Without a redactor
        bodies pass through unchanged.

        Returns:
            Tuple (redactedRequest, redactedResponse)

        Raises:
            RedactionError: If the redactor fails
        """
        filteredRequestHeaders = filterHeaders(requestHeaders, excludedHeaders)
        filteredResponseHeaders = filterHeaders(responseHeaders, excludedHeaders)

        if redaction is None:
            return (
                RedactedSide(headers=filteredRequestHeaders, body=requestBody),
                RedactedSide(headers=filteredResponseHeaders, body=responseBody),
            )

        redactor = asRedactor(redaction)
        logger.debug(f"Applying {redactor!r} to {method} {url}")

        requestContext = RedactionContext(
            method=method,
            url=url,
            headers=filteredRequestHeaders,
            body=requestBody,
            type=RedactionType.REQUEST,
        )
        responseContext = RedactionContext(
            method=method,
            url=url,
            headers=filteredResponseHeaders,
            body=responseBody,
            type=RedactionType.RESPONSE,
            status=status,
        )

        redactedRequest = requestContext.withResult(await self._run(redactor, requestContext))
        redactedResponse = responseContext.withResult(await self._run(redactor, responseContext))

        return (
            RedactedSide(headers=dict(redactedRequest.headers), body=redactedRequest.body),
            RedactedSide(headers=dict(redactedResponse.headers), body=redactedResponse.body),
        )

    async def _run(self, redactor: Redactor, context: RedactionContext) -> RedactionResult:
        try:
            return await redactor.redact(context)
        except RedactionError:
            raise
        except Exception as e:
            raise RedactionError(f"Redactor {redactor!r} failed for {context.type} side: {e}", originalError=e) from e
