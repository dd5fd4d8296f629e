"""Parse raw call transcripts into speaker turns and render them back.

Raw transcripts are stored as one blob with speaker labels, optionally
timestamped either before the label (``[0:42] Agent: ...``) or after it
(``Agent (0:42): ...``). Parsing is best effort: it never raises and may
return no turns for unlabeled text.
"""

import re

import logfire

from src.models.call_models import CallTurn

_TS = r"\d{1,2}:\d{2}(?::\d{2})?"

# Splits the blob on every speaker label, capturing the timestamps and speaker
_SPLIT_RE = re.compile(
    rf"(?:(?:\[({_TS})\]\s*)?\b(Agent|Customer)(?:\s*[\(\[]({_TS})[\)\]])?:\s*)",
    re.IGNORECASE,
)

_LINE_RE = re.compile(
    rf"^(?:\[?({_TS})\]?\s*)?(Agent|Customer)(?:\s*[\(\[]({_TS})[\)\]])?:\s*(.+)$",
    re.IGNORECASE,
)


def _speaker(label: str) -> str:
    return "Agent" if label.lower() == "agent" else "Customer"


def _turn(
    number: int,
    label: str,
    text: str,
    timestamp: str | None,
    call_id: str | None,
    agent_user_id: str | None,
) -> CallTurn:
    return CallTurn(
        call_id=call_id,
        agent_user_id=agent_user_id,
        turn_number=number,
        speaker=_speaker(label),
        text=text,
        timestamp_start=timestamp,
    )


def _parse_split(
    text: str, call_id: str | None, agent_user_id: str | None
) -> list[CallTurn]:
    parts = _SPLIT_RE.split(text)
    # parts = [preamble, ts_before, speaker, ts_after, body, ts_before, ...]
    turns: list[CallTurn] = []
    for i in range(1, len(parts) - 3, 4):
        ts_before, label, ts_after, body = parts[i : i + 4]
        body = (body or "").strip()
        if not label or not body:
            continue
        turns.append(
            _turn(
                len(turns) + 1,
                label,
                body,
                ts_before or ts_after,
                call_id,
                agent_user_id,
            )
        )
    return turns


def _parse_lines(
    text: str, call_id: str | None, agent_user_id: str | None
) -> list[CallTurn]:
    turns: list[CallTurn] = []
    for line in text.splitlines():
        match = _LINE_RE.match(line.strip())
        if not match:
            continue
        ts_before, label, ts_after, body = match.groups()
        turns.append(
            _turn(
                len(turns) + 1,
                label,
                body.strip(),
                ts_before or ts_after,
                call_id,
                agent_user_id,
            )
        )
    return turns


def parse_transcript(
    text: str | None,
    call_id: str | None = None,
    agent_user_id: str | None = None,
) -> list[CallTurn]:
    """
    Split a raw transcript into ordered turns.

    Args:
        text: Raw transcript blob
        call_id: Call id stamped on every turn
        agent_user_id: Agent id stamped on every turn

    Returns:
        Turns numbered from 1; empty for blank or unlabeled text
    """
    if not text or not text.strip():
        return []
    try:
        turns = _parse_split(text, call_id, agent_user_id)
        if not turns:
            turns = _parse_lines(text, call_id, agent_user_id)
    except Exception as e:
        logfire.warning(
            "Transcript parsing failed",
            call_id=call_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        return []
    return turns


def format_transcript(turns: list[CallTurn]) -> str:
    """Render turns as ``[ts] Speaker:`` blocks separated by blank lines."""
    blocks = []
    for turn in turns:
        prefix = f"[{turn.timestamp_start}] " if turn.timestamp_start else ""
        blocks.append(f"{prefix}{turn.speaker}:\n{turn.text}")
    return "\n\n".join(blocks)
