"""Canonical Author and Play records built from scraped page data.

Names are reconciled between the index listing (``LAST [Suffix...] First
[Middle...]``) and the profile heading (``First [Middle...] Last
[Suffix...]``). Disagreements are not resolved automatically; they flag the
author for review with a per-field diff.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .biography import ScrapedBiography
from .text_utils import (
    PLACEHOLDER_VALUES,
    is_all_caps,
    remove_disambiguation_suffix,
    string_arrays_equal,
    strings_equal,
    to_title_case,
)
from .utils import play_filename, utc_now
from .works import SENTINEL_PLAY_ID, ScrapedWork

NameDiff = Dict[str, Dict[str, str]]


def _is_removable(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        stripped = value.strip()
        return stripped == "" or stripped.lower() in PLACEHOLDER_VALUES
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def remove_empty_fields(value: Any) -> Any:
    """Recursively drop empty values from a document before it is written.

    ``None``, blank strings, the ``-``/``n/a`` placeholders, empty lists and
    empty dicts are removed. Numbers (including 0), booleans and datetimes are
    kept. A structure with nothing left in it becomes ``None``.
    """

    if isinstance(value, (datetime, date)):
        return value
    if isinstance(value, list):
        items = [remove_empty_fields(item) for item in value]
        items = [item for item in items if not _is_removable(item)]
        return items or None
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            cleaned = remove_empty_fields(item)
            if not _is_removable(cleaned):
                result[key] = cleaned
        return result or None
    return value


def new_record_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Name reconciliation
# ---------------------------------------------------------------------------


def _any_conflict(diff: NameDiff) -> bool:
    return bool(diff)


def _is_single_word(listing_name: str) -> bool:
    return len(listing_name.split()) == 1


@dataclass(frozen=True)
class NamePolicy:
    """Review heuristics applied while reconciling author names."""

    conflict_needs_review: Callable[[NameDiff], bool] = _any_conflict
    organization_needs_review: Callable[[str], bool] = _is_single_word


DEFAULT_NAME_POLICY = NamePolicy()

ORGANIZATION_REVIEW_REASON = "Single-word organization name may be a personal mononym"


@dataclass
class ParsedName:
    name: str
    display_name: str
    first_name: str = ""
    last_name: str = ""
    middle_names: List[str] = field(default_factory=list)
    suffixes: List[str] = field(default_factory=list)
    is_organization: bool = False
    needs_review: bool = False
    review_reason: str = ""
    review_data: NameDiff = field(default_factory=dict)


def _index_of(tokens: Sequence[str], target: str, start: int = 1) -> Optional[int]:
    if not target:
        return None
    for index in range(start, len(tokens)):
        if strings_equal(tokens[index], target):
            return index
    return None


def parse_organization(
    listing_name: str, heading_name: str, alt_name: str, policy: NamePolicy = DEFAULT_NAME_POLICY
) -> Optional[ParsedName]:
    """Return the organization reading of the names, or ``None`` for a person."""

    matches_heading = strings_equal(listing_name, heading_name)
    matches_alt = strings_equal(listing_name, alt_name) if alt_name else True
    if not (is_all_caps(listing_name) and matches_heading and matches_alt):
        return None

    name = alt_name or to_title_case(listing_name)
    needs_review = bool(policy.organization_needs_review(listing_name))
    return ParsedName(
        name=name,
        display_name=name,
        is_organization=True,
        needs_review=needs_review,
        review_reason=ORGANIZATION_REVIEW_REASON if needs_review else "",
    )


def _split_heading(heading: List[str], listing_last: str) -> Tuple[str, List[str], str, List[str]]:
    first = heading[0] if heading else ""
    last_index = _index_of(heading, listing_last)
    if last_index is None:
        last = heading[-1] if len(heading) > 1 else ""
        return first, heading[1:-1], last, []
    return first, heading[1:last_index], heading[last_index], heading[last_index + 1 :]


def _split_listing(listing: List[str], heading_first: str) -> Tuple[str, List[str], str, List[str]]:
    last = listing[0] if listing else ""
    first_index = _index_of(listing, heading_first)
    if first_index is None:
        first = listing[1] if len(listing) > 1 else ""
        return first, listing[2:], last, []
    return listing[first_index], listing[first_index + 1 :], last, listing[1:first_index]


def parse_personal_name(
    listing_name: str, heading_name: str, alt_name: str, policy: NamePolicy = DEFAULT_NAME_POLICY
) -> ParsedName:
    listing = listing_name.split()
    heading = heading_name.split()

    h_first, h_middle, h_last, h_suffixes = _split_heading(heading, listing[0] if listing else "")
    l_first, l_middle, l_last, l_suffixes = _split_listing(listing, h_first)

    diff: NameDiff = {}
    for label, from_heading, from_listing in (
        ("Suffixes", h_suffixes, l_suffixes),
        ("Middle Names", h_middle, l_middle),
        ("First Name", [h_first], [l_first]),
        ("Last Name", [h_last], [l_last]),
    ):
        if not string_arrays_equal(from_heading, from_listing):
            diff[label] = {"heading": " ".join(from_heading), "listing": " ".join(from_listing)}

    first_name = to_title_case(h_first)
    last_name = to_title_case(h_last)
    middle_names = [to_title_case(part) for part in h_middle]
    suffixes = [to_title_case(part) for part in h_suffixes]
    canonical = " ".join(part for part in [first_name, *middle_names, last_name, *suffixes] if part)

    needs_review = bool(policy.conflict_needs_review(diff))
    return ParsedName(
        name=canonical,
        display_name=alt_name or canonical,
        first_name=first_name,
        last_name=last_name,
        middle_names=middle_names,
        suffixes=suffixes,
        needs_review=needs_review,
        review_reason=(
            "Name parts differ between listing and heading: " + ", ".join(diff) if needs_review else ""
        ),
        review_data=diff if needs_review else {},
    )


def parse_author_name(
    listing_name: str, heading_name: str, alt_name: str = "", policy: NamePolicy = DEFAULT_NAME_POLICY
) -> ParsedName:
    listing = remove_disambiguation_suffix(listing_name)
    heading = remove_disambiguation_suffix(heading_name)
    alt = remove_disambiguation_suffix(alt_name)

    organization = parse_organization(listing, heading, alt, policy)
    if organization is not None:
        return organization
    return parse_personal_name(listing, heading, alt, policy)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass
class WorkAccumulator:
    """Ids of the plays written for one author, in processing order."""

    play_ids: List[str] = field(default_factory=list)
    adaptation_ids: List[str] = field(default_factory=list)
    source_play_ids: List[str] = field(default_factory=list)

    def add(self, play: "PlayRecord") -> None:
        if play.is_adaptation:
            self.adaptation_ids.append(play.id)
        else:
            self.play_ids.append(play.id)
        if play.play_id != SENTINEL_PLAY_ID:
            self.source_play_ids.append(play.play_id)

    @property
    def total(self) -> int:
        return len(self.play_ids) + len(self.adaptation_ids)


@dataclass
class AuthorRecord:
    id: str
    slug: str
    listing_name: str
    heading_name: str
    alt_name: str
    parsed: ParsedName
    biography: ScrapedBiography
    scraped_at: datetime
    source_url: str
    created_at: Optional[datetime] = None
    works: WorkAccumulator = field(default_factory=WorkAccumulator)

    @property
    def name(self) -> str:
        return self.parsed.name

    @property
    def display_name(self) -> str:
        return self.parsed.display_name

    @property
    def needs_review(self) -> bool:
        return self.parsed.needs_review

    @property
    def filename(self) -> str:
        return f"{self.slug}.json"

    def add_works(self, works: WorkAccumulator) -> None:
        self.works.play_ids.extend(works.play_ids)
        self.works.adaptation_ids.extend(works.adaptation_ids)
        self.works.source_play_ids.extend(works.source_play_ids)

    def to_document(self) -> Dict[str, Any]:
        now = utc_now()
        parsed = self.parsed
        bio = self.biography
        if parsed.is_organization:
            name_data: Dict[str, Any] = {"displayName": parsed.display_name, "isOrganization": True}
        else:
            name_data = {
                "displayName": parsed.display_name,
                "firstName": parsed.first_name,
                "lastName": parsed.last_name,
                "middleNames": parsed.middle_names,
                "suffixes": parsed.suffixes,
                "isOrganization": False,
            }

        document = {
            "_id": self.id,
            "slug": self.slug,
            "metadata": {
                "createdAt": self.created_at or now,
                "updatedAt": now,
                "scrapedAt": self.scraped_at,
                "sourceUrl": self.source_url,
                "needsReview": parsed.needs_review,
                "needsReviewReason": parsed.review_reason,
                "needsReviewData": parsed.review_data,
            },
            "rawFields": {
                "listingName": self.listing_name or parsed.name,
                "headingName": self.heading_name,
                "altName": self.alt_name,
            },
            "name": parsed.name,
            "nameData": name_data,
            "biography": {
                "yearBorn": bio.year_born,
                "yearDied": bio.year_died,
                "nationality": bio.nationality,
                "email": bio.email,
                "website": bio.website,
                "literaryAgent": bio.literary_agent,
                "biography": bio.biography,
                "research": bio.research,
                "address": bio.address,
                "telephone": bio.telephone,
            },
            "works": {
                "plays": list(self.works.play_ids),
                "adaptations": list(self.works.adaptation_ids),
                "doolleeIds": list(self.works.source_play_ids),
            },
        }

        pruned = remove_empty_fields(document)
        if not pruned["metadata"].get("needsReview"):
            pruned["metadata"].pop("needsReview", None)
        if parsed.review_data:
            # Both sides of every conflict are kept, even when one is blank.
            pruned["metadata"]["needsReviewData"] = {
                label: dict(values) for label, values in parsed.review_data.items()
            }
        name_data = pruned.get("nameData")
        if name_data and not name_data.get("isOrganization"):
            name_data.pop("isOrganization", None)
            if not name_data:
                pruned.pop("nameData")
        return pruned


def build_author(
    listing_name: str,
    slug: str,
    biography: ScrapedBiography,
    *,
    source_url: str,
    scraped_at: Optional[datetime] = None,
    policy: NamePolicy = DEFAULT_NAME_POLICY,
) -> AuthorRecord:
    """Build an :class:`AuthorRecord` from the listing entry and scraped biography."""

    heading_name = biography.heading_name or listing_name
    parsed = parse_author_name(listing_name, heading_name, biography.alt_name, policy)
    return AuthorRecord(
        id=new_record_id(),
        slug=slug,
        listing_name=listing_name,
        heading_name=biography.heading_name,
        alt_name=biography.alt_name,
        parsed=parsed,
        biography=biography,
        scraped_at=scraped_at or utc_now(),
        source_url=source_url,
    )


@dataclass
class PlayRecord:
    id: str
    play_id: str
    title: str
    author: str
    author_id: str
    work: ScrapedWork
    scraped_at: datetime
    source_url: str
    created_at: Optional[datetime] = None
    needs_review: bool = False
    review_reason: str = ""

    @property
    def is_adaptation(self) -> bool:
        return bool(self.work.adapting_author)

    @property
    def filename(self) -> str:
        return play_filename(self.title, self.play_id)

    def upsert_filter(self) -> Dict[str, str]:
        """Key used to upsert this play; sentinel ids fall back to ``_id``."""

        if self.play_id == SENTINEL_PLAY_ID:
            return {"_id": self.id}
        return {"playId": self.play_id}

    def to_document(self) -> Dict[str, Any]:
        now = utc_now()
        work = self.work
        parts = work.parts
        document = {
            "_id": self.id,
            "playId": self.play_id,
            "metadata": {
                "createdAt": self.created_at or now,
                "updatedAt": now,
                "scrapedAt": self.scraped_at,
                "sourceUrl": self.source_url,
                "needsReview": self.needs_review,
                "needsReviewReason": self.review_reason,
            },
            "rawFields": {
                "publishingInfo": work.publishing_info,
                "productionInfo": work.production_info,
            },
            "title": self.title,
            "altTitle": work.alt_title,
            "author": self.author,
            "authorId": self.author_id,
            "adaptingAuthor": work.adapting_author,
            "genres": work.genres,
            "synopsis": work.synopsis,
            "notes": work.notes,
            "organizations": work.organizations,
            "music": work.music,
            "reference": work.reference,
            "publisher": work.publisher,
            "publicationYear": work.publication_year,
            "isbn": work.isbn,
            "productionLocation": work.production_location,
            "productionYear": work.production_year,
        }
        if parts is not None:
            document.update(
                {
                    "partsCountMale": parts.male,
                    "partsCountFemale": parts.female,
                    "partsCountOther": parts.other,
                    "partsCountTotal": parts.total,
                    "partsTextMale": parts.male_text,
                    "partsTextFemale": parts.female_text,
                    "partsTextOther": parts.other_text,
                }
            )

        pruned = remove_empty_fields(document)
        if pruned is None:
            raise ValueError("Play document is empty after pruning")
        if not pruned["metadata"].get("needsReview"):
            pruned["metadata"].pop("needsReview", None)
        return pruned


def build_play(
    work: ScrapedWork,
    author: AuthorRecord,
    *,
    source_url: str,
    scraped_at: Optional[datetime] = None,
) -> PlayRecord:
    """Build a :class:`PlayRecord` for one work on ``author``'s profile.

    Raises ``ValueError`` for a work with neither a title nor a source id.
    """

    title = (work.title or "").strip()
    play_id = work.play_id or SENTINEL_PLAY_ID
    if not title and play_id == SENTINEL_PLAY_ID:
        raise ValueError("Work has neither a title nor a play id")

    reasons = []
    if play_id == SENTINEL_PLAY_ID:
        reasons.append("Missing source play id")
    if not title:
        reasons.append("Missing title")

    return PlayRecord(
        id=new_record_id(),
        play_id=play_id,
        title=title,
        author=work.original_author or author.display_name,
        author_id=author.id,
        work=work,
        scraped_at=scraped_at or utc_now(),
        source_url=source_url,
        needs_review=bool(reasons),
        review_reason="; ".join(reasons),
    )


__all__ = [
    "DEFAULT_NAME_POLICY",
    "AuthorRecord",
    "NamePolicy",
    "ParsedName",
    "PlayRecord",
    "WorkAccumulator",
    "build_author",
    "build_play",
    "new_record_id",
    "parse_author_name",
    "parse_organization",
    "parse_personal_name",
    "remove_empty_fields",
]
