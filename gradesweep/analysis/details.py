# gradesweep/analysis/details.py

"""
Decoding of the bitmask and enum fields the assessment service reports for
certificates and endpoints.

Every decoder is total: unknown bits and undefined enum values resolve to a
generic label instead of raising. Results are ``Verdict`` pairs of text and
level, leaving colors and layout to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Iterable

from gradesweep.constants import PROTOCOL_LIST, ROOT_STORES
from gradesweep.models import Cert

GOOD = "good"
NEUTRAL = "neutral"
WARN = "warn"
BAD = "bad"


@dataclass(frozen=True)
class Verdict:
    text: str
    level: str = NEUTRAL


NO = Verdict("No")
YES = Verdict("Yes")


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


# flag families


class CertIssue(IntFlag):
    NO_CHAIN_OF_TRUST = 1
    NOT_BEFORE = 2
    NOT_AFTER = 4
    HOSTNAME_MISMATCH = 8
    REVOKED = 16
    BAD_COMMON_NAME = 32
    SELF_SIGNED = 64
    BLACKLISTED = 128
    INSECURE_SIGNATURE = 256


CERT_ISSUE_DESC = {
    CertIssue.NO_CHAIN_OF_TRUST: "No chain of trust",
    CertIssue.NOT_BEFORE: "Not before",
    CertIssue.NOT_AFTER: "Not after",
    CertIssue.HOSTNAME_MISMATCH: "Hostname mismatch",
    CertIssue.REVOKED: "Revoked",
    CertIssue.BAD_COMMON_NAME: "Bad common name",
    CertIssue.SELF_SIGNED: "Self-signed",
    CertIssue.BLACKLISTED: "Blacklisted",
    CertIssue.INSECURE_SIGNATURE: "Insecure signature",
}


class ChainIssue(IntFlag):
    UNUSED = 1
    INCOMPLETE = 2
    UNRELATED_OR_DUPLICATE = 4
    WRONG_ORDER = 8
    SELF_SIGNED_ROOT = 16
    UNVALIDATED = 32


CHAIN_ISSUE_DESC = {
    ChainIssue.UNUSED: "Unused",
    ChainIssue.INCOMPLETE: "Incomplete chain",
    ChainIssue.UNRELATED_OR_DUPLICATE: "Chain contains unrelated or duplicate certificates",
    ChainIssue.WRONG_ORDER: "Order is incorrect",
    ChainIssue.SELF_SIGNED_ROOT: "Contains a self-signed root certificate",
    ChainIssue.UNVALIDATED: "Couldn't validate certificate from chain",
}


class ProtocolIntolerance(IntFlag):
    TLS10 = 1
    TLS11 = 2
    TLS12 = 4
    TLS13 = 8
    TLS1152 = 16
    TLS2152 = 32


PROTOCOL_INTOLERANCE_DESC = {
    ProtocolIntolerance.TLS10: "TLS 1.0",
    ProtocolIntolerance.TLS11: "TLS 1.1",
    ProtocolIntolerance.TLS12: "TLS 1.2",
    ProtocolIntolerance.TLS13: "TLS 1.3",
    ProtocolIntolerance.TLS1152: "TLS 1.152",
    ProtocolIntolerance.TLS2152: "TLS 2.152",
}


class RenegSupport(IntFlag):
    INSECURE_CLIENT_INITIATED = 1
    SECURE = 2
    SECURE_CLIENT_INITIATED = 4
    SERVER_REQUIRES_SECURE = 8


class MiscIntolerance(IntFlag):
    EXTENSION = 1
    LONG_HANDSHAKE = 2
    LONG_HANDSHAKE_WORKAROUND = 4


class RevocationInfo(IntFlag):
    CRL = 1
    OCSP = 2


class SCTSource(IntFlag):
    CERTIFICATE = 1
    STAPLED_OCSP = 2
    TLS_EXTENSION = 4


SCT_DESC = {
    SCTSource.CERTIFICATE: "certificate",
    SCTSource.STAPLED_OCSP: "stapled OCSP response",
    SCTSource.TLS_EXTENSION: "TLS extension",
}


class SessionTickets(IntFlag):
    SUPPORTED = 1
    FAULTY = 2
    INTOLERANT = 4


class ForwardSecrecy(IntFlag):
    SOME = 1
    MODERN = 2
    ROBUST = 4


def _set_bits(mask: int, table: dict) -> tuple[list[str], int]:
    """Descriptions of known bits in table order, plus any leftover bits."""
    found = []
    rest = mask
    for flag, desc in table.items():
        bit = int(flag)
        if mask & bit:
            found.append(desc)
            rest &= ~bit
    return found, rest


def cert_issues(mask: int) -> list[str]:
    found, rest = _set_bits(mask, CERT_ISSUE_DESC)
    if rest:
        found.append("Unknown")
    return found


def chain_issues(mask: int) -> Verdict:
    if not mask:
        return Verdict("None")
    found, rest = _set_bits(mask, CHAIN_ISSUE_DESC)
    if rest:
        found.append("Unknown")
    return Verdict(", ".join(found), WARN)


def protocol_intolerance(mask: int) -> Verdict:
    found, rest = _set_bits(mask, PROTOCOL_INTOLERANCE_DESC)
    if rest:
        found.append("Unknown")
    if not found:
        return NO
    return Verdict(" ".join(found), WARN)


def revocation_info(mask: int) -> str:
    found, _ = _set_bits(mask, {RevocationInfo.CRL: "CRL", RevocationInfo.OCSP: "OCSP"})
    return " ".join(found)


# closed enums


class RevocationStatus(IntEnum):
    NOT_CHECKED = 0
    REVOKED = 1
    NOT_REVOKED = 2
    CHECK_ERROR = 3
    NO_INFO = 4


REVOCATION_STATUS = {
    RevocationStatus.NOT_CHECKED: Verdict("Not checked"),
    RevocationStatus.REVOKED: Verdict("Bad (revoked)", BAD),
    RevocationStatus.NOT_REVOKED: Verdict("Good (not revoked)", GOOD),
    RevocationStatus.CHECK_ERROR: Verdict("Revocation check error", WARN),
    RevocationStatus.NO_INFO: Verdict("No revocation information", WARN),
}


def revocation_status(status: int) -> Verdict:
    return REVOCATION_STATUS.get(status, Verdict("Internal error", WARN))


class Outcome(IntEnum):
    FAILED = -1
    UNKNOWN = 0
    NOT_VULNERABLE = 1


_TEST_FAILED = Verdict("Test failed", WARN)
_UNKNOWN = Verdict("Unknown", WARN)

_COMMON_OUTCOMES = {
    Outcome.FAILED: _TEST_FAILED,
    Outcome.UNKNOWN: _UNKNOWN,
    Outcome.NOT_VULNERABLE: NO,
}


def decode(value, table: dict, fallback: Verdict = _UNKNOWN) -> Verdict:
    if value is None:
        return _UNKNOWN
    return table.get(value, fallback)


POODLE_TLS = {
    -3: Verdict("Test timed out", WARN),
    -2: Verdict("TLS not supported"),
    **_COMMON_OUTCOMES,
    2: Verdict("Vulnerable (INSECURE)", BAD),
}

ZOMBIE_POODLE = {
    **_COMMON_OUTCOMES,
    2: Verdict("Vulnerable", BAD),
    3: Verdict("Vulnerable and exploitable", BAD),
}

GOLDEN_DOODLE = {
    **_COMMON_OUTCOMES,
    4: Verdict("Vulnerable", BAD),
    5: Verdict("Vulnerable and exploitable", BAD),
}

ZERO_LENGTH_PADDING_ORACLE = {
    **_COMMON_OUTCOMES,
    6: Verdict("Vulnerable", BAD),
    7: Verdict("Vulnerable and exploitable", BAD),
}

SLEEPING_POODLE = {
    **_COMMON_OUTCOMES,
    10: Verdict("Vulnerable", BAD),
    11: Verdict("Vulnerable and exploitable", BAD),
}

TICKETBLEED = {
    **_COMMON_OUTCOMES,
    2: Verdict("Vulnerable and insecure", BAD),
}

OPENSSL_CCS = {
    **_COMMON_OUTCOMES,
    2: Verdict("Possibly vulnerable, but not exploitable", WARN),
    3: Verdict("Vulnerable and exploitable", BAD),
}

LUCKY_MINUS_20 = {
    **_COMMON_OUTCOMES,
    2: Verdict("Vulnerable and insecure", BAD),
}

BLEICHENBACHER = {
    **_COMMON_OUTCOMES,
    2: Verdict("Vulnerable (weak oracle)", BAD),
    3: Verdict("Vulnerable (strong oracle)", BAD),
    4: Verdict("Inconsistent results", WARN),
}

SESSION_RESUMPTION = {
    0: Verdict("No (Session resumption is not enabled)", WARN),
    1: Verdict("No (IDs assigned but not accepted)", WARN),
    2: YES,
}

ZERO_RTT = {
    -2: Verdict("Test failed", WARN),
    -1: Verdict("Not tested"),
    0: NO,
    1: Verdict("Yes", GOOD),
}

DH_KNOWN_PRIMES = {
    0: NO,
    1: Verdict("Yes (Replace with custom DH parameters if possible)", WARN),
    2: Verdict("Yes (weak primes, INSECURE)", BAD),
}

HPKP_STATUS = {
    "invalid": Verdict("Invalid", BAD),
    "disabled": Verdict("Disabled", WARN),
    "incomplete": Verdict("Incomplete", WARN),
    "valid": Verdict("Yes", GOOD),
}


# endpoint findings


def renegotiation(mask: int) -> list[tuple[str, Verdict]]:
    flags = RenegSupport(mask & 0xF)
    return [
        (
            "Secure Renegotiation",
            Verdict("Supported", GOOD) if mask else Verdict("Not supported", WARN),
        ),
        (
            "Secure Client-Initiated Renegotiation",
            Verdict(yes_no(RenegSupport.SECURE_CLIENT_INITIATED in flags)),
        ),
        (
            "Insecure Client-Initiated Renegotiation",
            Verdict("Supported (INSECURE)", BAD)
            if RenegSupport.INSECURE_CLIENT_INITIATED in flags
            else NO,
        ),
    ]


def poodle(details: dict) -> list[tuple[str, Verdict]]:
    return [
        (
            "POODLE (SSLv3)",
            Verdict("Vulnerable (INSECURE)", BAD) if details.get("poodle") else NO,
        ),
        ("POODLE (TLS)", decode(details.get("poodleTls"), POODLE_TLS)),
        ("Zombie POODLE", decode(details.get("zombiePoodle"), ZOMBIE_POODLE)),
        ("GOLDENDOODLE", decode(details.get("goldenDoodle"), GOLDEN_DOODLE)),
        (
            "OpenSSL 0-Length",
            decode(details.get("zeroLengthPaddingOracle"), ZERO_LENGTH_PADDING_ORACLE),
        ),
        ("Sleeping POODLE", decode(details.get("sleepingPoodle"), SLEEPING_POODLE)),
    ]


def drown(details: dict) -> Verdict:
    if details.get("drownErrors"):
        return Verdict("Unable to perform this test due to an internal error", WARN)
    if details.get("drownVulnerable"):
        return Verdict("Vulnerable", BAD)
    return NO


def misc_intolerance(mask: int) -> list[tuple[str, Verdict]]:
    flags = MiscIntolerance(mask & 0x7)
    if MiscIntolerance.LONG_HANDSHAKE in flags:
        long_hs = Verdict("Yes", WARN)
    elif MiscIntolerance.LONG_HANDSHAKE_WORKAROUND in flags:
        long_hs = Verdict("Yes (workaround success)", WARN)
    else:
        long_hs = NO

    return [
        ("Long handshake intolerance", long_hs),
        (
            "TLS extension intolerance",
            Verdict("Yes", WARN) if MiscIntolerance.EXTENSION in flags else NO,
        ),
    ]


def session_tickets(mask: int) -> Verdict:
    flags = SessionTickets(mask & 0x7)
    if SessionTickets.FAULTY in flags:
        return Verdict("Yes (implementation is faulty)", WARN)
    if SessionTickets.INTOLERANT in flags:
        return Verdict("No (server is intolerant to the extension)", WARN)
    return Verdict(yes_no(SessionTickets.SUPPORTED in flags))


def sct_presence(endpoints_details: Iterable[dict]) -> Verdict:
    for details in endpoints_details:
        mask = details.get("hasSct", 0)
        if not mask:
            continue
        found, _ = _set_bits(mask, SCT_DESC)
        return Verdict(f"Yes ({', '.join(found) or 'unknown source'})", GOOD)
    return Verdict("No", WARN)


def hsts(details: dict) -> Verdict:
    policy = details.get("hstsPolicy") or {}
    if policy.get("status") == "present":
        return Verdict(f"Yes ({policy.get('header', '')})", GOOD)
    return NO


def hsts_preloads(details: dict) -> list[tuple[str, bool]]:
    return [
        (p.get("source", ""), p.get("status") == "present")
        for p in details.get("hstsPreloads") or []
    ]


def hpkp(policy: dict | None) -> Verdict:
    if not policy:
        return NO
    verdict = HPKP_STATUS.get(policy.get("status"), NO)
    if verdict.level != GOOD:
        return verdict
    max_age = policy.get("maxAge", 0)
    if policy.get("includeSubDomains"):
        return Verdict(f"Yes (max-age={max_age}; includeSubdomains)", GOOD)
    return Verdict(f"Yes (max-age={max_age})", GOOD)


def hpkp_pins(policy: dict | None) -> list[str]:
    pins = []
    for pin in (policy or {}).get("header", "").split(";"):
        pin = pin.strip().replace('"', "").replace("=", ": ", 1)
        if pin.startswith("pin-"):
            pins.append(pin)
    return pins


# cipher suites and forward secrecy


def is_weak_suite(suite: dict) -> bool:
    name = suite.get("name", "")
    if suite.get("kxType") == "DH" and suite.get("kxStrength", 0) < 2048:
        return True
    if "TLS_RSA" in name and suite.get("cipherStrength", 0) <= 256:
        return True
    return "_3DES_" in name


def suite_verdict(suite: dict, chacha20_preference: bool = False) -> Verdict:
    name = suite.get("name", "")
    strength = suite.get("cipherStrength", 0)
    insecure = "_RC4_" in name or strength < 112
    weak = is_weak_suite(suite)

    q = suite.get("q")
    if q == 0:
        insecure = True
    elif q == 1:
        weak = True

    if insecure:
        return Verdict(f"{strength} (INSECURE)", BAD)
    if weak:
        return Verdict(f"{strength} (WEAK)", WARN)
    if "_CHACHA20_" in name and chacha20_preference:
        return Verdict(str(strength), GOOD)
    return Verdict(str(strength))


def find_suite(suites: list[dict], protocol_id: int, suite_id: int) -> dict | None:
    for group in suites or []:
        if group.get("protocol") != protocol_id:
            continue
        for suite in group.get("list") or []:
            if suite.get("id") == suite_id:
                return suite
    return None


@dataclass
class SimulationRow:
    client: str
    reference: bool
    protocol: str
    suite: str
    strength: int
    forward_secrecy: bool
    rc4: bool
    failed: bool = False


def simulations(details: dict) -> list[SimulationRow]:
    rows = []
    suites = details.get("suites") or []

    for sim in (details.get("sims") or {}).get("results") or []:
        client = sim.get("client") or {}
        label = f"{client.get('name', '')} {client.get('version', '')}".strip()

        if sim.get("errorCode", 0) != 0:
            rows.append(SimulationRow(label, False, "", "", 0, False, False, failed=True))
            continue

        suite = find_suite(suites, sim.get("protocolId"), sim.get("suiteId"))
        if suite is None:
            continue

        name = suite.get("name", "")
        rows.append(
            SimulationRow(
                client=label,
                reference=bool(client.get("isReference")),
                protocol=protocol_name(sim.get("protocolId")),
                suite=name,
                strength=suite.get("cipherStrength", 0),
                forward_secrecy="DHE_" in name,
                rc4="_RC4_" in name,
            )
        )

    return rows


def forward_secrecy(details: dict) -> Verdict:
    """
    Forward secrecy rating of an endpoint.

    The capability bitmask is downgraded when a simulated client settled on
    a forward-secret suite that is weak (small DH group, 3DES) or uses RC4.
    """
    weak = insecure = False
    suites = details.get("suites") or []

    for sim in (details.get("sims") or {}).get("results") or []:
        if sim.get("errorCode", 0) != 0:
            continue
        suite = find_suite(suites, sim.get("protocolId"), sim.get("suiteId"))
        if suite is None:
            continue
        name = suite.get("name", "")
        if "DHE_" not in name:
            continue
        if "_RC4_" in name:
            insecure = True
        elif is_weak_suite(suite):
            weak = True

    if insecure:
        return Verdict("Insecure key exchange", BAD)
    if weak:
        return Verdict("Weak key exchange", WARN)

    mask = details.get("forwardSecrecy", 0)
    if mask & ForwardSecrecy.ROBUST:
        return Verdict("Yes (with most browsers) (ROBUST)", GOOD)
    if mask & ForwardSecrecy.MODERN:
        return Verdict("With modern browsers")
    if mask & ForwardSecrecy.SOME:
        return Verdict("With some browsers", WARN)
    return Verdict("No (WEAK)", WARN)


# protocols

PROTOCOL_NAMES = {
    0x0200: "SSL 2.0",
    0x0300: "SSL 3.0",
    0x0301: "TLS 1.0",
    0x0302: "TLS 1.1",
    0x0303: "TLS 1.2",
    0x0304: "TLS 1.3",
}


def protocol_name(protocol_id) -> str:
    return PROTOCOL_NAMES.get(protocol_id, "Unknown")


def supported_protocols(details: dict) -> set[str]:
    return {
        f"{p.get('name', '')} {p.get('version', '')}"
        for p in details.get("protocols") or []
    }


def protocol_support(details: dict) -> list[tuple[str, Verdict]]:
    supported = supported_protocols(details)
    rows = []

    for proto in PROTOCOL_LIST:
        on = proto in supported
        if proto == "TLS 1.3":
            verdict = Verdict("Yes", GOOD) if on else NO
        elif proto == "TLS 1.2":
            verdict = Verdict("Yes", GOOD) if on else Verdict("No", WARN)
        elif proto in ("TLS 1.1", "TLS 1.0"):
            verdict = Verdict("Yes", WARN) if on else NO
        else:
            verdict = Verdict("Yes (INSECURE)", BAD) if on else NO
        rows.append((proto, verdict))

    return rows


# certificates

WEAK_SIGNATURES = frozenset({"SHA1withRSA", "MD5withRSA", "MD2withRSA"})


def signature(cert: Cert) -> Verdict:
    if cert.sig_alg in WEAK_SIGNATURES:
        return Verdict(f"{cert.sig_alg} (WEAK)", WARN)
    return Verdict(cert.sig_alg)


def chain_key(cert: Cert) -> Verdict:
    text = f"{cert.key_alg} {cert.key_size} bits"
    if cert.key_alg == "RSA" and cert.key_strength < 2048:
        return Verdict(f"{text} (WEAK)", WARN)
    return Verdict(text)


def extract_subject(data: str) -> str:
    first = data.split(",", 1)[0]
    return first.replace("CN=", "").replace("OU=", "")


def find_cert(certs: list[Cert], cert_id: str) -> Cert | None:
    for cert in certs:
        if cert.id == cert_id:
            return cert
    return None


def trust_info(cert_id: str, endpoints_details: Iterable[dict]) -> tuple[dict, bool]:
    """Per-store trust of a certificate; Java is not needed for overall trust."""
    stores = {store: False for store in ROOT_STORES}

    for details in endpoints_details:
        for chain in details.get("certChains") or []:
            for path in chain.get("trustPaths") or []:
                if cert_id not in (path.get("certIds") or []):
                    continue
                for trust in path.get("trust") or []:
                    if trust.get("isTrusted") and trust.get("rootStore") in stores:
                        stores[trust["rootStore"]] = True

    trusted = all(ok for store, ok in stores.items() if store != "Java")
    return stores, trusted


def cert_trust(cert: Cert, endpoints_details: Iterable[dict]) -> tuple[Verdict, dict]:
    stores, trusted = trust_info(cert.id, endpoints_details)
    if not trusted:
        return Verdict("No (NOT TRUSTED)", BAD), stores
    if cert.issues:
        return Verdict(f"No ({', '.join(cert_issues(cert.issues))})", BAD), stores
    return Verdict("Yes", GOOD), stores
