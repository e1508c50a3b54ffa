import logging
from typing import List, NamedTuple, Optional, Union

from cdm import CdmElement, CdmSegment
from x12_errors import X12ParserException

logger = logging.getLogger(__name__)

ISA_SEGMENT_ID = 'ISA'
ISA_LENGTH = 106

# Positions are fixed in the X12 standard
ELEMENT_SEPARATOR_POSITION = 3
COMPONENT_SEPARATOR_POSITION = 104
SEGMENT_TERMINATOR_POSITION = 105

LINE_ENDINGS = ('\r', '\n')


class X12Delimiters(NamedTuple):
    element_separator: str
    segment_terminator: str
    component_separator: str


def _normalize_source(source: Union[str, bytes, None]) -> str:
    if source is None:
        return ""
    if isinstance(source, bytes):
        try:
            source = source.decode('utf-8')
        except UnicodeDecodeError:
            # X12 extended character set payloads are single-byte; latin-1 maps every byte
            logger.debug("Source is not valid UTF-8. Decoding as latin-1.")
            source = source.decode('latin-1')
    return source.lstrip('\ufeff').strip()


def detect_delimiters(clean_edi: str) -> X12Delimiters:
    """
    Reads the delimiters from the fixed positions of the ISA header.

    Raises X12ParserException when the text does not start with a full ISA segment.
    """
    if not clean_edi.startswith(ISA_SEGMENT_ID):
        raise X12ParserException("Source does not begin with an ISA interchange header.")
    if len(clean_edi) < ISA_LENGTH:
        raise X12ParserException(f"ISA interchange header is truncated ({len(clean_edi)} of {ISA_LENGTH} characters).")

    element_separator = clean_edi[ELEMENT_SEPARATOR_POSITION]
    component_separator = clean_edi[COMPONENT_SEPARATOR_POSITION]
    segment_terminator = clean_edi[SEGMENT_TERMINATOR_POSITION]

    if element_separator.isalnum() or element_separator in LINE_ENDINGS:
        raise X12ParserException(f"Invalid element separator '{element_separator}' in ISA header.")
    if segment_terminator.isalnum():
        raise X12ParserException(f"Invalid segment terminator '{segment_terminator}' in ISA header.")
    if len({element_separator, component_separator, segment_terminator}) != 3:
        raise X12ParserException(
            f"ISA header delimiters are not distinct: Element='{element_separator}', "
            f"Segment={segment_terminator!r}, Component='{component_separator}'."
        )

    logger.debug(f"Delimiters detected: Element='{element_separator}', Segment='{segment_terminator!r}', Component='{component_separator}'")
    return X12Delimiters(element_separator, segment_terminator, component_separator)


class X12Tokenizer:
    """Splits raw interchange text into CdmSegments using the ISA-declared delimiters."""

    def __init__(self):
        self.delimiters: Optional[X12Delimiters] = None

    def tokenize(self, source: Union[str, bytes, None]) -> List[CdmSegment]:
        clean_edi = _normalize_source(source)
        if not clean_edi:
            logger.info("Source is empty. Nothing to tokenize.")
            self.delimiters = None
            return []

        self.delimiters = detect_delimiters(clean_edi)
        return self._segmentize(clean_edi, self.delimiters)

    def _segmentize(self, clean_edi: str, delimiters: X12Delimiters) -> List[CdmSegment]:
        segments: List[CdmSegment] = []
        edi_content = clean_edi.replace('\r\n', '\n').replace('\r', '\n')
        terminator = delimiters.segment_terminator
        if terminator in LINE_ENDINGS:
            terminator = '\n'
        else:
            edi_content = edi_content.replace('\n', '')

        for seg_str in edi_content.split(terminator):
            clean_seg = seg_str.strip()
            if not clean_seg: continue

            parts = clean_seg.split(delimiters.element_separator)
            segment_id = parts[0].strip()
            line_number = len(segments) + 1

            elements: List[CdmElement] = [CdmElement(value=value, position=idx + 1) for idx, value in enumerate(parts[1:])]
            # ISA16 is the component separator itself, so it is never treated as a composite
            component_separator = None if segment_id == ISA_SEGMENT_ID else delimiters.component_separator

            segments.append(CdmSegment(
                segment_id=segment_id,
                elements=elements,
                line_number=line_number,
                raw_segment=clean_seg,
                component_separator=component_separator,
            ))

        logger.debug(f"Tokenized {len(segments)} segments.")
        return segments
