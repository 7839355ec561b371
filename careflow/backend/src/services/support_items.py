"""NDIS support items offered by the organization (WA price guide excerpt)."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any


@dataclass(frozen=True, slots=True)
class SupportItem:
    support_item_number: str
    support_item_name: str
    description: str
    unit_price: Decimal
    claim_type: str
    funding_category: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


SUPPORT_ITEMS: tuple[SupportItem, ...] = (
    SupportItem(
        "01_011_0107_1_1",
        "Assistance With Self-Care Activities - Standard - Weekday Daytime",
        "Assistance with self-care activities during weekday daytime hours",
        Decimal("57.10"),
        "core",
        "Assistance with Daily Life",
    ),
    SupportItem(
        "01_015_0107_1_1",
        "Assistance With Self-Care Activities - Standard - Saturday",
        "Assistance with self-care activities on Saturday",
        Decimal("80.10"),
        "core",
        "Assistance with Daily Life",
    ),
    SupportItem(
        "01_002_0107_1_1",
        "Assistance With Self-Care Activities - Standard - Sunday",
        "Assistance with self-care activities on Sunday",
        Decimal("103.11"),
        "core",
        "Assistance with Daily Life",
    ),
    SupportItem(
        "01_013_0107_1_1",
        "Assistance With Self-Care Activities - Standard - Public Holiday",
        "Assistance with self-care activities on Public Holiday",
        Decimal("126.11"),
        "core",
        "Assistance with Daily Life",
    ),
    SupportItem(
        "04_104_0125_6_1",
        "Community Nursing Care For Continence Aid",
        "Continence assessment, training and support by a nurse",
        Decimal("124.05"),
        "core",
        "Health and Wellbeing",
    ),
    SupportItem(
        "04_103_0125_6_1",
        "Community Nursing Care For High Care Needs",
        "Nursing care for high care needs in the community",
        Decimal("124.05"),
        "core",
        "Health and Wellbeing",
    ),
    SupportItem(
        "15_056_0128_1_3",
        "Assistance With Decision Making, Daily Planning and Budgeting",
        "Support with decision making, daily planning and budgeting",
        Decimal("65.09"),
        "capacity_building",
        "Improved Daily Living",
    ),
    SupportItem(
        "15_045_0128_1_3",
        "Community Engagement Assistance",
        "Support to engage in community, social and recreational activities",
        Decimal("65.09"),
        "capacity_building",
        "Increased Social and Community Participation",
    ),
    SupportItem(
        "15_035_0106_1_3",
        "Individual Skill Development And Training",
        "Individual training for skill development",
        Decimal("65.09"),
        "capacity_building",
        "Improved Daily Living",
    ),
    SupportItem(
        "15_038_0117_1_3",
        "Training For Carers/Parents",
        "Training for parents and carers",
        Decimal("65.09"),
        "capacity_building",
        "Improved Daily Living",
    ),
    SupportItem(
        "07_001_0106_8_3",
        "Support Coordination Level 1: Support Connection",
        "Assistance to strengthen a participant's ability to connect with informal, mainstream and funded supports",
        Decimal("63.21"),
        "capacity_building",
        "Support Coordination",
    ),
    SupportItem(
        "07_002_0106_8_3",
        "Support Coordination Level 2: Coordination Of Supports",
        "Assistance to strengthen a participant's ability to coordinate their supports and participate in the community",
        Decimal("100.14"),
        "capacity_building",
        "Support Coordination",
    ),
    SupportItem(
        "07_004_0132_8_3",
        "Support Coordination Level 3: Specialist Support Coordination",
        "Specialist support coordination for high-level or complex needs",
        Decimal("190.54"),
        "capacity_building",
        "Support Coordination",
    ),
    SupportItem(
        "08_005_0106_2_3",
        "Assistance With Accommodation And Tenancy Obligations",
        "Support to maintain tenancy or accommodation",
        Decimal("65.09"),
        "capacity_building",
        "Improved Living Arrangements",
    ),
    SupportItem(
        "09_006_0106_6_3",
        "Life Transition Planning Incl. Mentoring, Peer-Support And Individual Skill Develop",
        "Support with life transitions",
        Decimal("65.09"),
        "capacity_building",
        "Finding and Keeping a Job",
    ),
)

_BY_NUMBER = {item.support_item_number: item for item in SUPPORT_ITEMS}


def list_support_items() -> list[SupportItem]:
    return list(SUPPORT_ITEMS)


def get_support_item(support_item_number: str) -> SupportItem | None:
    return _BY_NUMBER.get(support_item_number)


__all__ = ["SUPPORT_ITEMS", "SupportItem", "get_support_item", "list_support_items"]
