"""Corpus document model."""

from pydantic import BaseModel, Field, model_validator

from equipment_search.domain.models import DomainCategory
from equipment_search.text.normalization import normalize_equip


class CorpusDocument(BaseModel):
    """
    One catalogue listing, validated once at the loader boundary.

    Loose records may use the external loader's keys (equipmentId, groupId,
    rawText, domain); the normalized text is derived when absent.
    """

    id: str = Field(..., min_length=1)
    equipment_id: str | None = Field(default=None, alias="equipmentId")
    group_id: str = Field(..., min_length=1, alias="groupId")
    raw_text: str = Field(..., min_length=1, alias="rawText")
    text: str = ""
    domain_label: DomainCategory | None = Field(default=None, alias="domain")

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data):
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        for key in ("id", "equipment_id", "equipmentId", "group_id", "groupId"):
            if isinstance(data.get(key), (int, float)):
                data[key] = str(data[key])

        raw = data.pop("rawText", None) or data.get("raw_text")
        if not raw:
            # A record with only "text" carries the raw description
            raw = data.pop("text", None)
        if raw:
            data["raw_text"] = raw
            data.setdefault("text", normalize_equip(str(raw)))

        if not (data.get("group_id") or data.get("groupId")):
            group = data.get("equipment_id") or data.get("equipmentId") or data.get("id")
            if group is not None:
                data["group_id"] = group

        label = data.get("domain_label", data.get("domain"))
        if isinstance(label, str) and label.startswith("cleaning_"):
            data.pop("domain", None)
            data["domain_label"] = label.removeprefix("cleaning_")
        return data

    @property
    def identity(self) -> str:
        """Equipment identity used for deduplication and aggregation."""
        return self.equipment_id or self.group_id
