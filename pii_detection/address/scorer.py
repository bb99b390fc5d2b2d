"""
Address Scoring — per-factor confidence for grouped addresses.

Combines five factors:
- Component completeness (unique roles present)
- Pattern match (SWISS / EU / ALTERNATIVE / PARTIAL)
- Postal code validation
- City validation
- Country presence

final = sum(score) / sum(max_score), capped at 1.0. Factor descriptions
never echo address text.
"""
import re
from typing import List, Optional

from pii_detection.address.classifier import (
    get_canton_for_postal_code,
    is_known_swiss_city,
    is_valid_swiss_postal_code,
)
from pii_detection.config.constants import CITY, POSTAL_CODE, STREET_NAME, STREET_NUMBER
from pii_detection.models.address import (
    PATTERN_ALTERNATIVE,
    PATTERN_EU,
    PATTERN_PARTIAL,
    PATTERN_SWISS,
    GroupedAddress,
    ScoredAddress,
)
from pii_detection.models.entity import Entity
from pii_detection.models.metadata import ScoringFactor

DEFAULT_WEIGHTS: dict = {
    "component_completeness": 0.2,   # per unique role, max 1.0
    "pattern_match": 0.3,
    "postal_code_validation": 0.2,
    "city_validation": 0.1,
    "country_present": 0.1,
}

DEFAULT_REVIEW_THRESHOLD = 0.6
DEFAULT_AUTO_ANONYMIZE_THRESHOLD = 0.8


class AddressScorer:
    """
    Parametric address scorer.

    Thresholds:
        final <  review_threshold          → flagged_for_review
        final >= auto_anonymize_threshold  → auto_anonymize
    """

    def __init__(
        self,
        weights: Optional[dict] = None,
        review_threshold: float = DEFAULT_REVIEW_THRESHOLD,
        auto_anonymize_threshold: float = DEFAULT_AUTO_ANONYMIZE_THRESHOLD,
    ):
        self.weights = {**DEFAULT_WEIGHTS, **(weights or {})}
        self.review_threshold = review_threshold
        self.auto_anonymize_threshold = auto_anonymize_threshold

    def score_address(self, address: GroupedAddress) -> ScoredAddress:
        factors = [
            self._component_completeness(address),
            self._pattern_match(address),
            self._postal_code(address),
            self._city(address),
            self._country(address),
        ]
        total = sum(f.score for f in factors)
        max_total = sum(f.max_score for f in factors)
        final = min(total / max_total, 1.0) if max_total > 0 else 0.0

        return ScoredAddress(
            address=address,
            final_confidence=final,
            scoring_factors=factors,
            flagged_for_review=final < self.review_threshold,
            auto_anonymize=final >= self.auto_anonymize_threshold,
        )

    def score_addresses(self, addresses: List[GroupedAddress]) -> List[ScoredAddress]:
        return [self.score_address(a) for a in addresses]

    # ------------------------------------------------------------------
    # Factors
    # ------------------------------------------------------------------

    def _component_completeness(self, address: GroupedAddress) -> ScoringFactor:
        types = {c.type for c in address.component_entities}
        score = min(len(types) * self.weights["component_completeness"], 1.0)

        missing = [
            label for role, label in (
                (STREET_NAME, "street"), (STREET_NUMBER, "number"),
                (POSTAL_CODE, "postal code"), (CITY, "city"),
            )
            if role not in types
        ]
        description = f"{len(types)} unique component types"
        description += f" (missing: {', '.join(missing)})" if missing else " (complete address)"

        return ScoringFactor(
            name="Component Completeness",
            score=score,
            max_score=1.0,
            matched=len(types) >= 4,
            description=description,
        )

    def _pattern_match(self, address: GroupedAddress) -> ScoringFactor:
        weight = self.weights["pattern_match"]
        pattern = address.pattern_matched
        if pattern in (PATTERN_SWISS, PATTERN_EU):
            score, label = weight, "standard format"
        elif pattern == PATTERN_ALTERNATIVE:
            score, label = weight * 0.8, "alternative format"
        elif pattern == PATTERN_PARTIAL:
            score, label = weight * 0.5, "partial match"
        else:
            score, label = 0.0, "unknown format"

        return ScoringFactor(
            name="Pattern Match",
            score=score,
            max_score=weight,
            matched=pattern in (PATTERN_SWISS, PATTERN_EU, PATTERN_ALTERNATIVE),
            description=f"Pattern: {pattern} ({label})",
        )

    def _postal_code(self, address: GroupedAddress) -> ScoringFactor:
        weight = self.weights["postal_code_validation"]
        postal = address.components.get("postal")
        if not postal:
            return ScoringFactor(name="Postal Code Validation", score=0.0, max_score=weight,
                                 matched=False, description="No postal code found")

        digits = re.sub(r"\D", "", postal)
        code = int(digits) if digits else 0

        if len(digits) == 4 and is_valid_swiss_postal_code(code):
            score, matched = weight, True
            description = f"Valid Swiss postal code ({get_canton_for_postal_code(code)})"
        elif len(digits) == 5:
            score, matched, description = weight * 0.8, True, "Valid EU postal code format"
        elif len(digits) == 4 and 1000 <= code <= 9999:
            score, matched, description = weight * 0.7, True, "Possible Austrian postal code"
        else:
            score, matched, description = weight * 0.3, False, "Unverified postal code"

        return ScoringFactor(name="Postal Code Validation", score=score, max_score=weight,
                             matched=matched, description=description)

    def _city(self, address: GroupedAddress) -> ScoringFactor:
        weight = self.weights["city_validation"]
        city = address.components.get("city")
        if not city:
            score, matched, description = 0.0, False, "No city found"
        elif is_known_swiss_city(city):
            score, matched, description = weight, True, "Known Swiss city"
        elif address.components.get("postal"):
            score, matched, description = weight * 0.5, False, "City after postal code"
        else:
            score, matched, description = weight * 0.3, False, "Unverified city"

        return ScoringFactor(name="City Validation", score=score, max_score=weight,
                             matched=matched, description=description)

    def _country(self, address: GroupedAddress) -> ScoringFactor:
        weight = self.weights["country_present"]
        postal = address.components.get("postal") or ""
        if address.components.get("country"):
            score, matched, description = weight, True, "Country specified"
        elif "CH" in postal:
            score, matched, description = weight * 0.5, True, "Swiss country code in postal code"
        else:
            score, matched, description = 0.0, False, "No country specified"

        return ScoringFactor(name="Country Presence", score=score, max_score=weight,
                             matched=matched, description=description)

    # ------------------------------------------------------------------

    def update_entity_with_score(self, entity: Entity, scored: ScoredAddress) -> Entity:
        return entity.evolve(
            confidence=scored.final_confidence,
            flagged_for_review=scored.flagged_for_review,
            metadata=entity.metadata.merged(
                scoring_factors=[f.model_dump() for f in scored.scoring_factors],
                auto_anonymize=scored.auto_anonymize,
                pattern_matched=scored.pattern_matched,
            ),
        )


address_scorer = AddressScorer()
