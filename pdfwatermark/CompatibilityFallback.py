"""
Compatibility normalization for PDFs the parser cannot read directly.

Some files (compressed cross-reference streams, object streams, odd
generators) need a round trip first: ``uncompress`` into a plain copy, watermark
that, then ``compress`` the result. The round trip is done by pdftk, or by
pikepdf (qpdf) in-process.
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import pikepdf

from .WatermarkConfig import ExternalToolError, InvalidInputError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

COMPRESS = "compress"
UNCOMPRESS = "uncompress"


class Normalizer(ABC):
    """Rewrites a PDF into a form the primary parser accepts, and back."""

    name = "normalizer"

    @abstractmethod
    def uncompress(self, input_pdf: PathLike, output_pdf: PathLike) -> None: ...

    @abstractmethod
    def compress(self, input_pdf: PathLike, output_pdf: PathLike) -> None: ...


class PdftkNormalizer(Normalizer):
    """
    Runs ``pdftk <input> output <output> <operation>``.

    The executable is resolved on PATH once, at construction. Non-zero exit,
    a missing binary and a timeout all raise ExternalToolError.
    """

    name = "pdftk"

    def __init__(self, tool: str = "pdftk", timeout: Optional[float] = 120.0):
        self.tool = shutil.which(tool) or tool
        self.timeout = timeout

    def uncompress(self, input_pdf: PathLike, output_pdf: PathLike) -> None:
        self._run(input_pdf, output_pdf, UNCOMPRESS)

    def compress(self, input_pdf: PathLike, output_pdf: PathLike) -> None:
        self._run(input_pdf, output_pdf, COMPRESS)

    def _run(self, input_pdf: PathLike, output_pdf: PathLike, operation: str) -> None:
        cmd = [self.tool, str(input_pdf), "output", str(output_pdf), operation]
        logger.debug("Running %s", " ".join(cmd))

        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise ExternalToolError(f"pdftk not found: {self.tool}") from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(f"pdftk {operation} timed out after {self.timeout}s") from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            raise ExternalToolError(
                f"pdftk {operation} failed with exit status {e.returncode}: {stderr}"
            ) from e


class PikepdfNormalizer(Normalizer):
    """Same round trip done in-process with pikepdf."""

    name = "pikepdf"

    def uncompress(self, input_pdf: PathLike, output_pdf: PathLike) -> None:
        self._save(
            input_pdf, output_pdf,
            compress_streams=False,
            stream_decode_level=pikepdf.StreamDecodeLevel.generalized,
            object_stream_mode=pikepdf.ObjectStreamMode.disable,
        )

    def compress(self, input_pdf: PathLike, output_pdf: PathLike) -> None:
        self._save(
            input_pdf, output_pdf,
            compress_streams=True,
            object_stream_mode=pikepdf.ObjectStreamMode.generate,
        )

    @staticmethod
    def _save(input_pdf: PathLike, output_pdf: PathLike, **save_kwargs) -> None:
        try:
            with pikepdf.open(str(input_pdf)) as pdf:
                pdf.save(str(output_pdf), **save_kwargs)
        except (pikepdf.PdfError, OSError) as e:
            raise ExternalToolError(f"pikepdf could not rewrite {input_pdf}: {e}") from e


def build_normalizer(kind: str = "pdftk", tool: str = "pdftk", timeout: Optional[float] = 120.0) -> Normalizer:
    if kind == "pikepdf":
        return PikepdfNormalizer()
    if kind == "pdftk":
        return PdftkNormalizer(tool, timeout)
    raise InvalidInputError(f"Unknown normalizer: {kind}")
