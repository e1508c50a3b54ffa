from typing import List, Optional

from cdm import CdmSegment, CdmValidationError


def parse_count(value: Optional[str]) -> Optional[int]:
    """Trailer counts are numeric elements; anything else is treated as absent."""
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _control_number(segment: Optional[CdmSegment], position: int) -> str:
    if segment is None:
        return ""
    return (segment.get_element(position) or "").strip()


def _validate_count(
    errors: List[CdmValidationError],
    trailer: CdmSegment,
    label: str,
    expected_label: str,
    actual: int,
):
    declared_value = trailer.get_element(1)
    declared = parse_count(declared_value)
    if declared is None:
        errors.append(CdmValidationError(
            message=f"{label} trailer has an invalid {expected_label} count ({declared_value})",
            line_number=trailer.line_number,
            segment_id=trailer.segment_id,
        ))
    elif declared != actual:
        errors.append(CdmValidationError(
            message=f"{label} expected {declared} {expected_label} but contained {actual}",
            line_number=trailer.line_number,
            segment_id=trailer.segment_id,
        ))


def validate_transaction_set_trailer(st: CdmSegment, se: CdmSegment, segment_count: int) -> List[CdmValidationError]:
    """
    Cross-checks the SE trailer against its ST header.
    SE01 counts every segment from ST to SE inclusive; SE02 must repeat ST02.
    """
    errors: List[CdmValidationError] = []
    header_control = _control_number(st, 2)
    trailer_control = _control_number(se, 2)

    _validate_count(errors, se, f"Transaction set ({header_control})", "segments", segment_count)

    if header_control != trailer_control:
        errors.append(CdmValidationError(
            message=f"Transaction set header control number ({header_control}) does not match trailer control number ({trailer_control})",
            line_number=se.line_number,
            segment_id=se.segment_id,
        ))
    return errors


def validate_group_trailer(gs: CdmSegment, ge: CdmSegment, transaction_count: int) -> List[CdmValidationError]:
    """Cross-checks the GE trailer: GE01 is the transaction set count, GE02 repeats GS06."""
    errors: List[CdmValidationError] = []
    header_control = _control_number(gs, 6)
    trailer_control = _control_number(ge, 2)

    _validate_count(errors, ge, f"Group ({header_control})", "transaction sets", transaction_count)

    if header_control != trailer_control:
        errors.append(CdmValidationError(
            message=f"Group header control number ({header_control}) does not match trailer control number ({trailer_control})",
            line_number=ge.line_number,
            segment_id=ge.segment_id,
        ))
    return errors


def validate_interchange_trailer(isa: CdmSegment, iea: CdmSegment, group_count: int) -> List[CdmValidationError]:
    """Cross-checks IEA01 against the number of groups actually assembled."""
    errors: List[CdmValidationError] = []
    _validate_count(errors, iea, f"Interchange ({_control_number(isa, 13)})", "groups", group_count)
    return errors
