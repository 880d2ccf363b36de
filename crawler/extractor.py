"""Declarative field extraction from HTML and JSON documents."""
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from scrapy.selector import Selector

logger = logging.getLogger(__name__)

XPATH_PREFIX = 'xpath:'
JSON_PREFIX = 'json:'


class FieldRule(BaseModel):
    """
    How to pull one field out of a document.

    Locators are tried in order and the first one yielding a non-empty
    result wins. A locator is a scrapy CSS selector (with `::text` /
    `::attr(name)`), an XPath prefixed with `xpath:`, or a dotted JSON path
    prefixed with `json:`.

    Each raw value is passed through `pattern` (first capture group, values
    that don't match are dropped) and then `transforms` in order. Empty
    values are discarded.
    """
    locators: Tuple[str, ...]
    pattern: Optional[str] = None
    transforms: Tuple[Callable[[str], str], ...] = ()
    many: bool = False
    joiner: Optional[str] = None  # join all values into one string

    model_config = ConfigDict(frozen=True)

    @property
    def default(self) -> Any:
        if self.many and self.joiner is None:
            return []
        return ""


class _Document:
    """Lazily parsed views of one fetched document."""

    def __init__(self, content: str = "", selector: Optional[Selector] = None):
        self.content = content or ""
        self._selector = selector
        self._json = None
        self._json_loaded = False

    @property
    def selector(self) -> Selector:
        if self._selector is None:
            self._selector = Selector(text=self.content)
        return self._selector

    @property
    def json(self) -> Any:
        if not self._json_loaded:
            self._json_loaded = True
            try:
                self._json = json.loads(self.content)
            except ValueError:
                logger.debug("Document is not JSON; json locators will match nothing")
                self._json = None
        return self._json


class Extractor:
    """Apply field rules to fetched documents. Pure; never raises for missing data."""

    def extract(self, content: str, rules: Dict[str, FieldRule]) -> Dict[str, Any]:
        """
        Extract every field in `rules` from `content`.

        Args:
            content: Raw document (HTML or JSON text)
            rules: Field name -> rule

        Returns:
            Field name -> value; missing fields get '' (or [] for list fields)
        """
        document = _Document(content)
        return {name: self._apply(document, rule) for name, rule in rules.items()}

    def extract_field(self, content: str, rule: FieldRule) -> Any:
        return self._apply(_Document(content), rule)

    def extract_items(self, content: str, item_locator: str, rule: FieldRule) -> List[Any]:
        """
        Apply `rule` inside every node matched by `item_locator`.

        Returns one value per node, in document order; a node where the
        rule finds nothing yields the rule default. Locators in `rule` are
        relative to the node (use `.//` for XPath).
        """
        document = _Document(content)
        if item_locator.startswith(XPATH_PREFIX):
            nodes = document.selector.xpath(item_locator[len(XPATH_PREFIX):])
        else:
            nodes = document.selector.css(item_locator)
        return [self._apply(_Document(selector=node), rule) for node in nodes]

    def _apply(self, document: _Document, rule: FieldRule) -> Any:
        for locator in rule.locators:
            values = []
            for raw in self._select(document, locator):
                value = self._post_process(raw, rule)
                if value:
                    values.append(value)

            if not values:
                continue

            if not rule.many:
                return values[0]
            if rule.joiner is not None:
                return rule.joiner.join(values)
            return values

        return rule.default

    @staticmethod
    def _post_process(raw: str, rule: FieldRule) -> str:
        value = raw
        if rule.pattern:
            match = re.search(rule.pattern, value)
            if not match:
                return ""
            value = match.group(1) if match.groups() else match.group(0)

        for transform in rule.transforms:
            value = transform(value)

        return value.strip() if value else ""

    def _select(self, document: _Document, locator: str) -> List[str]:
        if locator.startswith(JSON_PREFIX):
            return self._select_json(document.json, locator[len(JSON_PREFIX):])
        if locator.startswith(XPATH_PREFIX):
            return document.selector.xpath(locator[len(XPATH_PREFIX):]).getall()
        return document.selector.css(locator).getall()

    @staticmethod
    def _select_json(data: Any, path: str) -> List[str]:
        node = data
        for key in path.split('.'):
            if isinstance(node, dict):
                node = node.get(key)
            elif isinstance(node, list) and key.isdigit() and int(key) < len(node):
                node = node[int(key)]
            else:
                return []

        if node is None or isinstance(node, (dict, list)):
            return []
        return [str(node)]
