from __future__ import annotations

import gzip
import logging
from pathlib import Path
from typing import List, Optional, TextIO

from .hicfragClasses import RestrictionFragment


def _open_text_auto(path: str | Path, mode: str = "rt") -> TextIO:
    p = Path(path)
    if p.suffix.lower() == ".gz":
        return gzip.open(p, mode, encoding="utf-8", errors="replace")
    return open(p, mode, encoding="utf-8", errors="replace")


def load_restriction_fragments(
        bed_path: str | Path,
        min_frag_size: Optional[int] = None,
        max_frag_size: Optional[int] = None,
        logger: logging.Logger | None = None,
) -> List[RestrictionFragment]:
    """
    Read restriction fragments from a BED file (.bed or .bed.gz).

    Only the first three columns are used. Header, comment and malformed lines
    are skipped; fragments outside [min_frag_size, max_frag_size] are discarded.
    """
    fragments: List[RestrictionFragment] = []
    n_malformed = 0
    n_size = 0

    with _open_text_auto(bed_path) as fh:
        for nline, line in enumerate(fh, 1):
            if not line.strip() or line.startswith(("#", "track", "browser")):
                continue
            cols = line.rstrip("\n").split("\t")
            if len(cols) < 3:
                n_malformed += 1
                if logger:
                    logger.warning(f"Wrong input format in line {nline} of {bed_path}. Not a BED file?")
                continue
            try:
                frag = RestrictionFragment(cols[0], int(cols[1]), int(cols[2]))
            except ValueError as e:
                n_malformed += 1
                if logger:
                    logger.warning(f"Skipping line {nline} of {bed_path}: {e}")
                continue

            fragl = len(frag)
            if (min_frag_size is not None and fragl < min_frag_size) or \
                    (max_frag_size is not None and fragl > max_frag_size):
                n_size += 1
                if logger:
                    logger.debug(f"Fragment {frag} [{fragl}] outside of size range. Discarded")
                continue

            fragments.append(frag)

    if logger:
        logger.info(f"BED loaded: {len(fragments)} restriction fragments from {bed_path}")
        if n_malformed or n_size:
            logger.info(f"  skipped: malformed={n_malformed}, outside_size_range={n_size}")

    return fragments
