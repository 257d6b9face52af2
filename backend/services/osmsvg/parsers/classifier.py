"""
Tag-based feature classification.

A classifier maps (relation tags, feature tags, range) to at most one
Feature. Relation tags are scanned first, then the feature's own tags; for
each tag the ordered rule list is tried, and the first tag matching any rule
decides the kind. Classifiers are pure and total so callers can swap them
without touching the pipeline.
"""

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..core.types import Classifier, Feature, FeatureKind, RangeRef, StoredFeature, Tag

Tags = Union[Mapping[str, str], Sequence[Tag], None]


@dataclass(frozen=True)
class TagRule:
    """
    (key, value) -> kind rule. None on either side matches anything.

    Examples:
        TagRule("highway", None, FeatureKind.ROAD)     # highway=*
        TagRule(None, "coastline", FeatureKind.COASTLINE)  # *=coastline
    """
    key: Optional[str]
    value: Optional[str]
    kind: FeatureKind

    def matches(self, key: str, value: str) -> bool:
        return (self.key is None or self.key == key) and (self.value is None or self.value == value)


DEFAULT_TAG_RULES: Tuple[TagRule, ...] = (
    TagRule("highway", None, FeatureKind.ROAD),
    TagRule("building", None, FeatureKind.BUILDING),
    TagRule(None, "coastline", FeatureKind.COASTLINE),
    TagRule(None, "park", FeatureKind.PARK),
    TagRule("railway", "subway", FeatureKind.TRANSIT),
    TagRule("route", "subway", FeatureKind.TRANSIT),
)


def _iter_tags(tags: Tags) -> Iterable[Tag]:
    if not tags:
        return ()
    if isinstance(tags, Mapping):
        return tags.items()
    return tags


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else str(value)


def make_tag_classifier(rules: Sequence[TagRule]) -> Classifier:
    """
    Build a classifier from an ordered list of tag rules.

    Args:
        rules: Rules in priority order; only raw (stored) kinds are allowed

    Returns:
        Classifier (relation_tags, feature_tags, ref) -> Optional[Feature]

    Raises:
        ValueError: If a rule targets a processed kind

    Example:
        >>> classify = make_tag_classifier(DEFAULT_TAG_RULES)
        >>> classify([], [("highway", "primary")], RangeRef(0, 2)).kind
        <FeatureKind.ROAD: 'road'>
    """
    rule_list: List[TagRule] = list(rules)
    for rule in rule_list:
        # Fail at construction so the classifier itself stays total
        StoredFeature(rule.kind, RangeRef(0, 0))

    def classify(relation_tags: Tags, feature_tags: Tags, ref: RangeRef) -> Optional[Feature]:
        for tags in (relation_tags, feature_tags):
            for tag in _iter_tags(tags):
                try:
                    key, value = tag
                except (TypeError, ValueError):
                    continue
                key, value = _as_str(key), _as_str(value)
                for rule in rule_list:
                    if rule.matches(key, value):
                        return StoredFeature(rule.kind, ref)
        return None

    return classify


default_classifier: Classifier = make_tag_classifier(DEFAULT_TAG_RULES)
