"""Benefit program identities and display names."""

from __future__ import annotations

from enum import StrEnum


class ProgramKind(StrEnum):
    """Programs with dedicated explanation tables."""

    SNAP = "snap"
    WIC = "wic"
    MEDICAID = "medicaid"
    TANF = "tanf"
    SSI = "ssi"
    SECTION8 = "section8"
    LIHTC = "lihtc"


PROGRAM_DISPLAY_NAMES: dict[ProgramKind, str] = {
    ProgramKind.SNAP: "SNAP",
    ProgramKind.WIC: "WIC",
    ProgramKind.MEDICAID: "Medicaid",
    ProgramKind.TANF: "TANF",
    ProgramKind.SSI: "SSI",
    ProgramKind.SECTION8: "Section 8",
    ProgramKind.LIHTC: "LIHTC",
}

PROGRAM_DESCRIPTIONS: dict[ProgramKind, str] = {
    ProgramKind.SNAP: "Supplemental Nutrition Assistance Program: monthly food benefits",
    ProgramKind.WIC: "Women, Infants, and Children: nutrition support for pregnant women and young children",
    ProgramKind.MEDICAID: "Free or low-cost health coverage",
    ProgramKind.TANF: "Temporary Assistance for Needy Families: cash assistance for families with children",
    ProgramKind.SSI: "Supplemental Security Income: monthly payments for older, blind, or disabled people",
    ProgramKind.SECTION8: "Housing Choice Voucher rental assistance",
    ProgramKind.LIHTC: "Low-Income Housing Tax Credit affordable rental units",
}

# Jurisdiction suffixes dropped when deriving a name from an id
_JURISDICTION_TOKENS = {"federal", "state", "us"}


def program_kind(program_id: str) -> ProgramKind | None:
    """Program kind from an id such as "snap-federal" or "ga-medicaid"."""
    tokens = program_id.lower().replace("_", "-").split("-")
    for kind in ProgramKind:
        if kind.value in tokens:
            return kind
    return None


def program_display_name(program_id: str) -> str:
    """Human name for a program id; unknown ids are title-cased."""
    kind = program_kind(program_id)
    if kind is not None:
        return PROGRAM_DISPLAY_NAMES[kind]
    words = [t for t in program_id.replace("_", "-").split("-") if t and t.lower() not in _JURISDICTION_TOKENS]
    return " ".join(w.capitalize() for w in words) or program_id


def program_description(program_id: str) -> str:
    kind = program_kind(program_id)
    return PROGRAM_DESCRIPTIONS.get(kind, "") if kind else ""
