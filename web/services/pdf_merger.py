"""Concatenate rendered page PDFs into the final report."""
from __future__ import annotations

import io
from typing import Sequence

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError


class MergeError(Exception):
    """An input buffer is not a readable PDF."""


def merge_pdfs(buffers: Sequence[bytes]) -> bytes:
    """
    Append every page of every buffer, in the order given, to one document.

    The output page count equals the sum of the input page counts.
    """
    writer = PdfWriter()
    for index, buffer in enumerate(buffers):
        try:
            reader = PdfReader(io.BytesIO(buffer))
            pages = list(reader.pages)
        except (PdfReadError, ValueError) as exc:
            raise MergeError(f"Input {index} is not a readable PDF: {exc}") from exc
        for page in pages:
            writer.add_page(page)

    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()
