# FILE: tests/conftest.py

import pytest
import sys
import os
import logging
from typing import Callable, List, Sequence

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from binder_registry import BinderRegistry
from asn856_binder import Asn856TransactionSetBinder
from x12_parser import X12Parser

# ==============================================================================
# PYTEST CONFIGURATION & HOOKS
# ==============================================================================

def pytest_configure(config):
    """Configure pytest settings and markers."""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies.")

@pytest.fixture(scope="session", autouse=True)
def setup_test_environment(pytestconfig):
    """Set up test environment with logging configuration."""
    # Use pytest's log_cli_level if available, otherwise default to INFO
    log_level = pytestconfig.getoption("log_cli_level") or "INFO"
    logging.basicConfig(
        level=log_level.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s:%(lineno)d] - %(message)s",
        stream=sys.stdout,
        force=True,
    )
    logging.info(f"Test logging configured with level: {log_level.upper()}")
    yield

# ==============================================================================
# TEST DATA
# ==============================================================================

# 106 characters: '*' at position 3, ':' at 104, '~' at 105
GENERIC_ISA = "ISA*00*          *00*          *ZZ*SENDER         *ZZ*RECEIVER       *240718*1200*^*00501*000000001*0*P*:~"

@pytest.fixture(scope="session")
def asn856_edi_string() -> str:
    """
    A complete ASN 856 interchange: one group, one transaction set of 31 segments.
    Shipment (1) -> Order (2) -> Pack (3) -> Item (4), plus a second Pack (5) under the Order.
    """
    return """
ISA*01*0000000000*01*0000000000*ZZ*ABCDEFGHIJKLMNO*ZZ*123456789012345*101127*1719*U*00400*000003438*0*P*>~
GS*SH*4405197800*999999999*20111206*1045*49*X*004060~
ST*856*0008~
BSN*14*829716*20111206*142428*0002~
HL*1**S~
TD1*PCS*2****A3*60.310*LB~
TD5**2*XXXX**XXXX~
REF*BM*999999-001~
REF*CN*5787970539~
DTM*011*20111206~
N1*SH*1 EDI SOURCE~
N3*31875 SOLON RD~
N4*SOLON*OH*44139~
N1*OB*XYZ RETAIL~
N3*P O BOX 9999999~
N4*ATLANTA*GA*31139-0020**SN*9999~
N1*SF*1 EDI SOURCE~
N3*31875 SOLON ROAD~
N4*SOLON*OH*44139~
HL*2*1*O~
PRF*99999817***20111205~
TD1*CTN25*2~
REF*IA*99999~
HL*3*2*P~
MAN*GM*00800000000000000019~
HL*4*3*I~
LIN*1*VP*87787D*UP*999999310145~
SN1*1*24*EA~
PO4*1*24*EA~
PID*F****BLUE WIDGET~
HL*5*2*P~
MAN*GM*00800000000000000026~
SE*31*0008~
GE*1*49~
IEA*1*000000049~
""".strip()

def build_interchange(
    bodies: Sequence[Sequence[str]],
    identifier_code: str = "856",
    declared_groups: int = 1,
) -> str:
    """Wraps transaction set bodies in ST/SE, one GS/GE and ISA/IEA with correct counts."""
    lines: List[str] = [GENERIC_ISA, "GS*SH*SENDER*RECEIVER*20240718*1200*1*X*004010~"]
    for index, body in enumerate(bodies, start=1):
        control_number = f"{index:04d}"
        lines.append(f"ST*{identifier_code}*{control_number}~")
        lines.extend(f"{segment}~" for segment in body)
        lines.append(f"SE*{len(body) + 2}*{control_number}~")
    lines.append(f"GE*{len(bodies)}*1~")
    lines.append(f"IEA*{declared_groups}*000000001~")
    return "\n".join(lines)

@pytest.fixture(scope="session")
def interchange_builder() -> Callable[..., str]:
    return build_interchange

# ==============================================================================
# PARSER FIXTURES
# ==============================================================================

@pytest.fixture(scope="session")
def asn_registry() -> BinderRegistry:
    return BinderRegistry([Asn856TransactionSetBinder()])

@pytest.fixture(scope="session")
def asn_parser(asn_registry: BinderRegistry) -> X12Parser:
    return X12Parser(registry=asn_registry)
