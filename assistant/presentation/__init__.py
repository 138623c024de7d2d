"""Client-side presentation of chat transcripts."""

from assistant.presentation.renderers import RENDERERS, render_invocation
from assistant.presentation.transcript import TranscriptBuilder, parse_sse_lines

__all__ = ["RENDERERS", "TranscriptBuilder", "parse_sse_lines", "render_invocation"]
