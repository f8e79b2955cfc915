"""
Source list loader.

Reads the YAML configuration file and returns the list of feed URLs
to fetch each cycle:

    urls:
      - https://example.com/feed.xml
      - https://example.org/atom.xml
"""

import logging
from pathlib import Path

import yaml

from newsfab.errors import ConfigError
from newsfab.feeds.schemas import SourceList

logger = logging.getLogger(__name__)


def parse_sources(data: object) -> SourceList:
    """
    Extract the source list from parsed YAML data.

    Non-string and blank entries are skipped with a warning. Duplicates
    are dropped, keeping the first occurrence.

    Raises:
        ConfigError: If the document has no `urls` list
    """
    if not isinstance(data, dict):
        raise ConfigError("configuration must be a mapping with a 'urls' list")

    urls = data.get("urls")
    if not isinstance(urls, list):
        raise ConfigError("configuration key 'urls' must be a list")

    seen: dict[str, None] = {}
    for item in urls:
        if not isinstance(item, str) or not item.strip():
            logger.warning(f"Skipping invalid URL: {item!r}")
            continue
        seen.setdefault(item.strip(), None)

    return tuple(seen)


def load_sources(path: str | Path) -> SourceList:
    """
    Load the source list from a YAML file.

    Args:
        path: Path to the configuration file

    Returns:
        Tuple of source URLs in file order

    Raises:
        ConfigError: If the file is unreadable or malformed
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path} is not valid UTF-8: {e}") from e

    sources = parse_sources(data)
    logger.debug(f"Loaded {len(sources)} sources from {path}")
    return sources
