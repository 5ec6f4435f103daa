"""Writing generated code to disk."""

import logging
from pathlib import Path
from typing import List, Union

from .codegen.base import GeneratedCode
from .errors import OutputError

logger = logging.getLogger(__name__)


def flat_output_path(output_path: Union[str, Path]) -> Path:
    """Flat output is a single module; force the ``.py`` suffix."""
    path = Path(output_path)
    if path.suffix != ".py":
        path = path.with_suffix(".py")
    return path


def write_generated(generated: GeneratedCode, output_path: Union[str, Path]) -> List[Path]:
    """Write generated code and return the paths written.

    Library output treats ``output_path`` as a package directory; flat output
    treats it as the module file.

    Raises:
        OutputError: a directory or file could not be written
    """
    written: List[Path] = []
    if generated.is_flat:
        path = flat_output_path(output_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(generated.source or "", encoding="utf-8")
        except OSError as e:
            raise OutputError(str(path), e.strerror or str(e)) from e
        written.append(path)
    else:
        directory = Path(output_path)
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputError(str(directory), e.strerror or str(e)) from e
        for filename, source in sorted(generated.files.items()):
            path = directory / filename
            try:
                path.write_text(source, encoding="utf-8")
            except OSError as e:
                raise OutputError(str(path), e.strerror or str(e)) from e
            written.append(path)

    for path in written:
        logger.debug("Wrote %s", path)
    logger.info("Wrote %d files", len(written))
    return written
