import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cdm import CdmHlLoop, CdmSegment, CdmValidationError

logger = logging.getLogger(__name__)

HL_SEGMENT_ID = 'HL'


class HierarchicalLoopResult(BaseModel):
    """Output of one builder pass over a transaction set body."""
    header_segments: List[CdmSegment] = Field(default_factory=list)
    loops: List[CdmHlLoop] = Field(default_factory=list)
    errors: List[CdmValidationError] = Field(default_factory=list)


class LoopingValidation(BaseModel):
    looping_valid: bool
    errors: Optional[List[CdmValidationError]] = None


class HierarchicalLoopBuilder:
    """
    Rebuilds the HL loop forest of a transaction set from its flat body segments.

    Each HL segment opens a loop (HL01 id, HL02 parent id, HL03 level code,
    HL04 child code) and every following non-HL segment belongs to it until
    the next HL. A parent must be an HL seen earlier in the same transaction
    set. A loop whose parent cannot be found is reported and kept as an extra
    root so that its descendants are still reachable.
    """

    def build(self, segments: List[CdmSegment]) -> HierarchicalLoopResult:
        result = HierarchicalLoopResult()
        loops_by_id: Dict[str, CdmHlLoop] = {}
        current_loop: Optional[CdmHlLoop] = None

        for segment in segments:
            if segment.segment_id != HL_SEGMENT_ID:
                if current_loop is None:
                    result.header_segments.append(segment)
                else:
                    current_loop.segments.append(segment)
                continue

            current_loop = self._open_loop(segment)
            logger.debug(f"[HL line {segment.line_number}] Opened loop {current_loop.hierarchical_id} (parent={current_loop.parent_id}, level={current_loop.level_code})")
            self._attach(current_loop, segment, loops_by_id, result)

        logger.debug(f"Built {len(loops_by_id)} HL loops with {len(result.loops)} roots and {len(result.errors)} errors.")
        return result

    def _open_loop(self, segment: CdmSegment) -> CdmHlLoop:
        parent_id = (segment.get_element(2) or "").strip()
        child_code = (segment.get_element(4) or "").strip()
        return CdmHlLoop(
            hierarchical_id=(segment.get_element(1) or "").strip(),
            parent_id=parent_id or None,
            level_code=(segment.get_element(3) or "").strip(),
            child_code=child_code or None,
            line_number=segment.line_number,
        )

    def _attach(
        self,
        loop: CdmHlLoop,
        segment: CdmSegment,
        loops_by_id: Dict[str, CdmHlLoop],
        result: HierarchicalLoopResult,
    ):
        if loop.hierarchical_id in loops_by_id:
            self._record(result, CdmValidationError(
                message=f"HL segment ({loop.hierarchical_id}) has a duplicate id",
                line_number=segment.line_number,
                segment_id=segment.segment_id,
                hierarchical_id=loop.hierarchical_id,
            ))
        else:
            loops_by_id[loop.hierarchical_id] = loop

        if loop.parent_id is None:
            result.loops.append(loop)
            return

        # Only HLs seen earlier count as parents; a forward reference is reported as missing
        parent = loops_by_id.get(loop.parent_id)
        if parent is None or parent is loop:
            self._record(result, CdmValidationError(
                message=f"HL segment ({loop.hierarchical_id}) is missing parent ({loop.parent_id})",
                line_number=segment.line_number,
                segment_id=segment.segment_id,
                hierarchical_id=loop.hierarchical_id,
            ))
            result.loops.append(loop)
            return

        parent.children.append(loop)

    @staticmethod
    def _record(result: HierarchicalLoopResult, error: CdmValidationError):
        logger.warning(f"[STRUCTURAL ERROR] {error.message} (line {error.line_number})")
        result.errors.append(error)


def validate_looping(result: HierarchicalLoopResult) -> LoopingValidation:
    """Looping is valid iff the builder recorded no errors; errors keep their discovery order."""
    if not result.errors:
        return LoopingValidation(looping_valid=True)
    return LoopingValidation(looping_valid=False, errors=list(result.errors))
