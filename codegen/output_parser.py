# codegen/output_parser.py
"""
Turns a ProviderResponse into records (flat string maps keyed by tool field).

Recovery runs as an ordered list of strategies; the first one that recovers
every source in the response wins:

    1. StrictParse       complete argument maps, else plain JSON
    2. BraceEscapeParse  JSON with \\{ and \\} swapped for sentinels
    3. RegexSalvage      field-anchored regexes over the raw text
    4. ModelReformat     a model pretty-prints the salvaged content
"""
from abc import ABC, abstractmethod
import json
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console

from codegen.data_models import FileArtifact, ProviderConfig, ProviderRequest, ProviderResponse, ToolInvocation
from codegen.errors import ParseError
from codegen.prompts import REFORMAT_PROMPT
from codegen.provider_adapters import flatten_arguments
from codegen.tool_defs import FIELD_CONTENT, FIELD_FILE_PATH

FIGURE_OPEN = "[figureOpen]"
FIGURE_CLOSE = "[figureClose]"

FENCE_PATTERN = re.compile(r"```[^\n`]*\n?([\s\S]*?)```")
CODE_BLOCK_PATTERN = re.compile(r"```[^\n`]*\n([\s\S]*?)```")

Record = Dict[str, str]
Source = Union[Record, str]


class ParsePayload(BaseModel):
    invocations: List[ToolInvocation] = Field(default_factory=list)
    text: str = ""
    required: Tuple[str, ...] = (FIELD_FILE_PATH, FIELD_CONTENT)
    path_hint: Optional[str] = None
    model_config = ConfigDict(extra='ignore', frozen=True)

    def sources(self) -> List[Source]:
        """Complete argument maps as dicts; everything that still needs parsing as raw text."""
        found: List[Source] = []
        for invocation in self.invocations:
            if all(field in invocation.arguments for field in self.required):
                found.append(dict(invocation.arguments))
            elif invocation.raw_arguments.strip():
                found.append(invocation.raw_arguments)
            elif invocation.arguments:
                found.append(json.dumps(invocation.arguments))
        if not self.invocations and self.text.strip():
            found.append(self.text)
        return found


class ParseResult(BaseModel):
    records: List[Dict[str, str]]
    tier: int
    strategy: str
    model_config = ConfigDict(extra='ignore', frozen=True)

    def artifacts(self) -> List[FileArtifact]:
        return [
            FileArtifact(file_path=record[FIELD_FILE_PATH], content=record.get(FIELD_CONTENT, ""))
            for record in self.records
        ]


def normalize_escapes(content: str) -> str:
    """Literal backslash-r-n and backslash-n sequences become real line breaks."""
    return content.replace("\\r\\n", "\n").replace("\\n", "\n")


def strip_fences(raw: str) -> str:
    if raw.lstrip().startswith(("{", "[")):
        return raw
    match = FENCE_PATTERN.search(raw)
    if match and match.group(1).strip():
        return match.group(1)
    return raw


def extract_json_text(raw: str) -> Optional[str]:
    """Cuts the outermost JSON object or array out of surrounding chatter."""
    text = strip_fences(raw).strip()
    starts = [index for index in (text.find("{"), text.find("[")) if index != -1]
    if not starts:
        return None
    start = min(starts)
    closing = "}" if text[start] == "{" else "]"
    end = text.rfind(closing)
    if end <= start:
        return None
    return text[start:end + 1]


def records_from_decoded(decoded: Any, required: Sequence[str]) -> Optional[List[Record]]:
    if isinstance(decoded, dict):
        if all(field in decoded for field in required):
            return [flatten_arguments(decoded)]
        # {"files": [...]} style wrappers
        nested = [value for value in decoded.values() if isinstance(value, list)]
        if len(nested) == 1:
            return records_from_decoded(nested[0], required)
        return None
    if isinstance(decoded, list):
        records = [flatten_arguments(item) for item in decoded if isinstance(item, dict) and all(field in item for field in required)]
        return records or None
    return None


def decode_json_string(value: str) -> str:
    """Decodes the body of a JSON string literal, tolerating invalid escapes."""
    try:
        return json.loads(f'"{value}"', strict=False)
    except json.JSONDecodeError:
        return (
            value.replace("\\\\", "\x00")
            .replace('\\"', '"')
            .replace("\\'", "'")
            .replace("\\n", "\n")
            .replace("\\r", "\r")
            .replace("\\t", "\t")
            .replace("\\{", "{")
            .replace("\\}", "}")
            .replace("\x00", "\\")
        )


def field_pattern(field: str) -> re.Pattern:
    return re.compile(r'"%s"\s*:\s*(?:"((?:[^"\\]|\\.)*)"|(-?\d+(?:\.\d+)?))' % re.escape(field))


class ParseStrategy(ABC):
    tier = 0
    name = "base"

    async def attempt(self, payload: ParsePayload) -> Optional[List[Record]]:
        sources = payload.sources()
        if not sources:
            return None
        records: List[Record] = []
        for source in sources:
            if isinstance(source, dict):
                records.append(source)
                continue
            recovered = await self.recover(source, payload)
            if not recovered:
                return None
            records.extend(recovered)
        return records or None

    @abstractmethod
    async def recover(self, raw: str, payload: ParsePayload) -> Optional[List[Record]]:
        """Recover records from one raw text, or None"""


class StrictParse(ParseStrategy):
    tier = 1
    name = "strict"

    async def recover(self, raw: str, payload: ParsePayload) -> Optional[List[Record]]:
        json_text = extract_json_text(raw)
        if json_text is None:
            return None
        try:
            decoded = json.loads(json_text, strict=False)
        except json.JSONDecodeError:
            return None
        return records_from_decoded(decoded, payload.required)


class BraceEscapeParse(ParseStrategy):
    tier = 2
    name = "brace-escape"

    async def recover(self, raw: str, payload: ParsePayload) -> Optional[List[Record]]:
        if "\\{" not in raw and "\\}" not in raw:
            return None
        json_text = extract_json_text(raw.replace("\\{", FIGURE_OPEN).replace("\\}", FIGURE_CLOSE))
        if json_text is None:
            return None
        try:
            decoded = json.loads(json_text, strict=False)
        except json.JSONDecodeError:
            return None
        records = records_from_decoded(decoded, payload.required)
        if not records:
            return None
        return [
            {key: value.replace(FIGURE_OPEN, "{").replace(FIGURE_CLOSE, "}") for key, value in record.items()}
            for record in records
        ]


class RegexSalvage(ParseStrategy):
    tier = 3
    name = "regex-salvage"

    async def recover(self, raw: str, payload: ParsePayload) -> Optional[List[Record]]:
        matches: Dict[str, List[str]] = {}
        for field in payload.required:
            found = []
            for match in field_pattern(field).finditer(raw):
                quoted, number = match.group(1), match.group(2)
                found.append(decode_json_string(quoted) if quoted is not None else number)
            if not found:
                return None
            matches[field] = found
        count = min(len(values) for values in matches.values())
        return [{field: matches[field][index] for field in payload.required} for index in range(count)]


class ModelReformat(ParseStrategy):
    tier = 4
    name = "model-reformat"

    CONTENT_TAIL_PATTERN = re.compile(r'"%s"\s*:\s*"([\s\S]*)' % FIELD_CONTENT)

    def __init__(self, gateway, config: Optional[ProviderConfig], temperature: float = 0.0, console: Optional[Console] = None):
        self.gateway = gateway
        self.config = config
        self.temperature = temperature
        self.console = console or Console()

    def salvage(self, raw: str, payload: ParsePayload) -> Tuple[Optional[str], str]:
        path_match = field_pattern(FIELD_FILE_PATH).search(raw)
        file_path = decode_json_string(path_match.group(1)) if path_match and path_match.group(1) else payload.path_hint
        content_match = field_pattern(FIELD_CONTENT).search(raw)
        if content_match and content_match.group(1) is not None:
            return file_path, content_match.group(1)
        tail_match = self.CONTENT_TAIL_PATTERN.search(raw)
        if tail_match:
            # Truncated reply: no closing quote.
            return file_path, tail_match.group(1).rstrip().rstrip('"}]').rstrip()
        return file_path, raw

    async def recover(self, raw: str, payload: ParsePayload) -> Optional[List[Record]]:
        if set(payload.required) != {FIELD_FILE_PATH, FIELD_CONTENT} or self.gateway is None or self.config is None:
            return None
        file_path, content = self.salvage(raw, payload)
        if not file_path or not content.strip():
            return None

        self.console.print(f"[yellow]Warning: Could not parse the solution for '{file_path}'. Asking the model to reformat it.[/yellow]")
        request = ProviderRequest(
            system_prompt=REFORMAT_PROMPT,
            user_prompt=f"{REFORMAT_PROMPT}{content}",
            temperature=self.temperature,
            tool=None,
            agent_name="Reformatter",
        )
        response = await self.gateway.submit(request, self.config)
        if response is None or not response.text.strip():
            return None
        match = CODE_BLOCK_PATTERN.search(response.text)
        formatted = match.group(1) if match else response.text.strip()
        if not formatted.strip():
            return None
        return [{FIELD_FILE_PATH: file_path, FIELD_CONTENT: formatted}]


class StructuredOutputParser:
    """Runs the strategies in order and records which tier produced the result."""

    def __init__(self, console: Console, gateway=None, reformat_config: Optional[ProviderConfig] = None, reformat_temperature: float = 0.0):
        self.console = console
        self.strategies: List[ParseStrategy] = [
            StrictParse(),
            BraceEscapeParse(),
            RegexSalvage(),
            ModelReformat(gateway, reformat_config, reformat_temperature, console),
        ]

    async def parse_records(
        self,
        response: Optional[ProviderResponse],
        required: Sequence[str],
        path_hint: Optional[str] = None,
    ) -> ParseResult:
        if response is None or response.is_empty:
            stop_reason = response.stop_reason if response else None
            raise ParseError(f"Empty response from model (stop reason: {stop_reason})", path_hint)

        payload = ParsePayload(
            invocations=response.tool_calls,
            text=response.text,
            required=tuple(required),
            path_hint=path_hint,
        )
        for strategy in self.strategies:
            records = await strategy.attempt(payload)
            if records:
                if FIELD_CONTENT in payload.required:
                    records = [{**record, FIELD_CONTENT: normalize_escapes(record[FIELD_CONTENT])} for record in records]
                if strategy.tier > 1:
                    self.console.print(f"[dim]Parsed model output with tier {strategy.tier} ({strategy.name}).[/dim]")
                return ParseResult(records=records, tier=strategy.tier, strategy=strategy.name)

        raise ParseError("All parsing strategies failed to recover the tool arguments", path_hint)

    async def parse_artifacts(self, response: Optional[ProviderResponse], path_hint: Optional[str] = None) -> ParseResult:
        return await self.parse_records(response, (FIELD_FILE_PATH, FIELD_CONTENT), path_hint)
