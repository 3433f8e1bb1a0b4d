# gradesweep/io/console.py

from __future__ import annotations

import sys
import textwrap
from datetime import datetime, timezone

import click
import typer

from gradesweep.analysis import details as dd
from gradesweep.analysis.expiry import days_remaining
from gradesweep.analysis.grading import grade_color, norm_grade
from gradesweep.io.ssllabs import SSLLabsError
from gradesweep.models import AnalyzeInfo, ApiInfo, AssessmentStatus, Cert, EndpointInfo, HostResult

COLORS = {dd.GOOD: "green", dd.WARN: "yellow", dd.BAD: "red"}
SEPARATOR = "–" * 92
DATE_FMT = "%Y/%m/%d %H:%M:%S"


class Console:
    """Interactive per-host output; quiet and report modes run without one."""

    def __init__(self, *, color: bool = True, detailed: bool = False, pager: bool = False):
        self.color = color
        self.detailed = detailed
        self.pager = pager
        self.live = sys.stdout.isatty()

    # primitives

    def style(self, text: str, level: str | None = None, **kw) -> str:
        if not self.color or (level not in COLORS and not kw):
            return text
        return click.style(text, fg=COLORS.get(level), **kw)

    def verdict(self, v: dd.Verdict) -> str:
        return self.style(v.text, v.level)

    def _line(self, text: str, final: bool = True) -> None:
        if self.live:
            typer.echo("\r\x1b[K" + text, nl=final, color=self.color)
        elif final:
            typer.echo(text, color=self.color)

    def _host(self, host: str) -> str:
        return self.style(host, bold=True) + self.style(" → ", dim=True)

    # live output

    def banner(self, info: ApiInfo) -> None:
        message = " ".join(info.messages)
        typer.echo()
        for line in textwrap.wrap(message, 80):
            typer.echo(self.style(line, dim=True), color=self.color)
        typer.echo(
            self.style(
                f"Assessments: {info.current_assessments + 1}/{info.max_assessments} "
                f"(CoolOff: {info.new_assessment_cool_off})",
                dim=True,
            ),
            color=self.color,
        )
        typer.echo()

    def progress(self, host: str, message: str) -> None:
        self._line(self._host(host) + self.style(f"{message}…", dim=True), final=False)

    def failure(self, host: str, message: str) -> None:
        self._line(self._host(host) + self.style(message, dd.BAD))

    def colored_grade(self, grade: str) -> str:
        grade = norm_grade(grade)
        return self.style(grade, grade_color(grade))

    def grade(self, result: HostResult) -> None:
        if len(result.endpoints) <= 1:
            text = self.colored_grade(result.lowest_grade)
        else:
            text = " ".join(
                self.colored_grade(e.grade) + self.style(f"/{e.ip_address}", dim=True)
                for e in result.endpoints
            )

        if result.expiry_message:
            text += " " + self.style(f"({result.expiry_message})", dd.BAD)

        self._line(self._host(result.host) + text)

        if self.detailed and result.analysis is not None:
            self.details(result)

        typer.echo()

    # detailed report

    def details(self, result: HostResult) -> None:
        try:
            info = result.analysis.info(detailed=True, from_cache=True)
        except SSLLabsError as exc:
            typer.echo(self.style(f"\nCan't fetch full analyze info: {exc}\n", dd.BAD))
            return

        if info.status is not AssessmentStatus.READY:
            typer.echo(self.style(f"\n{info.status_message}\n", dd.BAD))
            return

        lines = DetailReport(self).render(info)
        text = "\n".join(lines) + "\n"

        if self.pager:
            click.echo_via_pager(text, color=self.color)
        else:
            typer.echo(text, color=self.color)


class DetailReport:
    """Line-based rendering of a fully detailed assessment."""

    def __init__(self, console: Console):
        self.c = console
        self.lines: list[str] = []

    def out(self, text: str = "") -> None:
        self.lines.append(text)

    def row(self, name: str, value: str, width: int = 24) -> None:
        self.out(f" {name:<{width}} {self.c.style('|', dim=True)} {value}")

    def wide(self, name: str, value: str) -> None:
        self.row(name, value, width=40)

    def header(self, name: str) -> None:
        self.out(self.c.style(SEPARATOR, dim=True))
        self.out(" ▾ " + self.c.style(name.upper(), bold=True))
        self.out(self.c.style(SEPARATOR, dim=True))

    def render(self, info: AnalyzeInfo) -> list[str]:
        all_details = [e.details for e in info.endpoints]

        self.certificate(info.certs, all_details)

        for index, endpoint in enumerate(info.endpoints, 1):
            self.out()
            self.out(
                self.c.style(f" {info.host} ", bold=True)
                + f"#{index} ({endpoint.ip_address})"
            )
            self.endpoint(endpoint, info.certs)

        return self.lines

    # certificate

    def certificate(self, certs: list[Cert], all_details: list[dict]) -> None:
        self.out()
        self.header("Server Key and Certificate")

        if not certs:
            self.out(self.c.style(" No valid certificates and keys", dd.BAD))
            self.out(self.c.style(SEPARATOR, dim=True))
            return

        cert = certs[0]
        def dim(s):
            return self.c.style(s, dim=True)

        self.row("Subject", dd.extract_subject(cert.subject))
        self.row("", dim(f"Fingerprint: {cert.sha256_hash}"))
        self.row("", dim(f"Pin: {cert.pin_sha256}"))
        self.row("Common names", " ".join(cert.common_names))

        if cert.alt_names:
            if len(cert.alt_names) > 5:
                names = " ".join(cert.alt_names[:4]) + dim(f" (+{len(cert.alt_names) - 4} more)")
            else:
                names = " ".join(cert.alt_names)
            if cert.issues & dd.CertIssue.HOSTNAME_MISMATCH:
                names += " " + self.c.style("MISMATCH", dd.BAD)
            self.row("Alternative names", names)

        self.validity(cert)

        self.row("Serial number", cert.serial_number)
        self.row("Key", f"{cert.key_alg} {cert.key_size} bits")
        self.row("Weak Key (Debian)", dd.yes_no(cert.key_known_debian_insecure))

        issuer = dd.extract_subject(cert.issuer_subject)
        if cert.issues & dd.CertIssue.SELF_SIGNED:
            self.row("Issuer", issuer + dim(" (Self-signed)"))
        else:
            self.row("Issuer", issuer)

        self.row("Signature algorithm", self.c.verdict(dd.signature(cert)))
        self.row(
            "Extended Validation",
            self.c.style("Yes", dd.GOOD) if cert.validation_type == "E" else "No",
        )
        self.row("Certificate Transparency", self.c.verdict(dd.sct_presence(all_details)))

        if cert.revocation_info:
            self.row("Revocation information", dd.revocation_info(cert.revocation_info))
            if cert.crl_uris:
                self.row("", dim(f"CRL: {cert.crl_uris[0]}"))
            if cert.ocsp_uris:
                self.row("", dim(f"OCSP: {cert.ocsp_uris[0]}"))

        self.row("Revocation status", self.c.verdict(dd.revocation_status(cert.revocation_status)))

        if cert.dns_caa:
            self.row("DNS CAA", self.c.style("Yes", dd.GOOD))
            policy = cert.caa_policy or {}
            if policy:
                self.row("", dim(f"policy host: {policy.get('policyHostname', '')}"))
                for rec in policy.get("caaRecords") or []:
                    self.row(
                        "",
                        dim(f"{rec.get('tag')}: {rec.get('value')} flags: {rec.get('flags', 0)}"),
                    )
        else:
            self.row("DNS CAA", self.c.style("No", dd.WARN))

        trusted, stores = dd.cert_trust(cert, all_details)
        self.row("Trusted", self.c.verdict(trusted))
        self.row(
            "",
            " ".join(self.c.style(s, dd.GOOD if ok else dd.BAD) for s, ok in stores.items()),
        )

        self.out(self.c.style(SEPARATOR, dim=True))

    def validity(self, cert: Cert) -> None:
        if cert.not_before:
            self.row("Valid from", cert.not_before.strftime(DATE_FMT))
        if cert.not_after is None:
            return

        until = cert.not_after.strftime(DATE_FMT)
        if datetime.now(timezone.utc) >= cert.not_after:
            self.row("Valid until", self.c.style(f"{until} (EXPIRED)", dd.BAD))
        else:
            days = days_remaining(cert)
            self.row("Valid until", until + self.c.style(f" (expires in {days:,} days)", dim=True))

    # endpoint

    def endpoint(self, endpoint: EndpointInfo, certs: list[Cert]) -> None:
        d = endpoint.details
        self.out()
        self.chain(d, certs)
        self.protocols(d)
        self.suites(d)
        self.simulations(d)
        self.protocol_details(d)
        self.transactions(d)
        self.misc(endpoint)
        self.out(self.c.style(SEPARATOR, dim=True))

    def chain(self, d: dict, certs: list[Cert]) -> None:
        chains = d.get("certChains") or []
        if not chains:
            return

        self.header("Certification Paths")
        chain = chains[0]
        cert_ids = chain.get("certIds") or []

        self.row("Certificates provided", str(len(cert_ids)))
        self.row("Chain issues", self.c.verdict(dd.chain_issues(chain.get("issues", 0))))

        for cert_id in cert_ids[1:]:
            cert = dd.find_cert(certs, cert_id)
            if cert is None:
                continue
            self.out(self.c.style(SEPARATOR, dim=True))
            self.row("Subject", dd.extract_subject(cert.subject))
            self.row("", self.c.style(f"Fingerprint: {cert.sha256_hash}", dim=True))
            if cert.not_after:
                self.row(
                    "Valid until",
                    cert.not_after.strftime(DATE_FMT)
                    + self.c.style(f" (expires in {days_remaining(cert):,} days)", dim=True),
                )
            self.row("Key", self.c.verdict(dd.chain_key(cert)))
            self.row("Issuer", dd.extract_subject(cert.issuer_subject))
            self.row("Signature algorithm", self.c.verdict(dd.signature(cert)))

    def protocols(self, d: dict) -> None:
        if not d.get("protocols"):
            return
        self.header("Protocols")
        for name, verdict in dd.protocol_support(d):
            self.row(name, self.c.verdict(verdict))

    def suites(self, d: dict) -> None:
        groups = list(d.get("suites") or [])
        no_sni = d.get("noSniSuites")
        if not groups and not no_sni:
            return

        self.header("Cipher Suites")
        if no_sni:
            groups.insert(0, no_sni)

        for i, group in enumerate(reversed(groups)):
            if i:
                self.out(self.c.style(SEPARATOR, dim=True))

            title = " " + dd.protocol_name(group.get("protocol"))
            if no_sni and group is no_sni:
                title += self.c.style(" No SNI", dim=True)
            if group.get("preference"):
                title += self.c.style(" (suites in server-preferred order)", dim=True)
            else:
                title += self.c.style(" (server has no preference)", dim=True)
            self.out(title)
            self.out(self.c.style(SEPARATOR, dim=True))

            for suite in group.get("list") or []:
                verdict = dd.suite_verdict(suite, bool(d.get("chaCha20Preference")))
                name = self.c.style(f"{suite.get('name', ''):<52}", verdict.level)
                extra = ""
                if suite.get("kxType") == "DH":
                    extra = f" (DH {suite.get('kxStrength', 0)} bits)"
                elif suite.get("namedGroupName"):
                    extra = (
                        f" ({suite.get('kxType', '')} {suite['namedGroupName']}"
                        f" ~ {suite.get('kxStrength', 0)} bits RSA)"
                    )
                self.out(
                    f" {name} {self.c.style('|', dim=True)} "
                    f"{self.c.verdict(verdict)}{self.c.style(extra, dim=True)}"
                )

    def simulations(self, d: dict) -> None:
        rows = dd.simulations(d)
        if not rows:
            return

        self.header("Handshake Simulation")
        bar = self.c.style("|", dim=True)

        for sim in rows:
            if sim.failed:
                self.out(f" {sim.client:<20} {bar} {self.c.style('Fail', dd.BAD)}")
                continue

            client = sim.client + (" R" if sim.reference else "")
            if sim.rc4:
                tag = self.c.style("  RC4", dd.BAD)
            elif sim.forward_secrecy:
                tag = self.c.style("   FS", dd.GOOD)
            else:
                tag = self.c.style("No FS", dim=True)

            if sim.protocol in ("TLS 1.2", "TLS 1.3"):
                level = dd.GOOD
            elif sim.protocol in ("TLS 1.1", "TLS 1.0"):
                level = dd.WARN
            elif sim.protocol in ("SSL 2.0", "SSL 3.0"):
                level = dd.BAD
            else:
                level = None

            self.out(
                f" {client:<20} {bar} {self.c.style(f'{sim.protocol:<7}', level)} "
                f"{sim.suite:<50} {tag} {sim.strength}"
            )

    def protocol_details(self, d: dict) -> None:
        self.header("Protocol Details")
        v = self.c.verdict

        for name, verdict in dd.renegotiation(d.get("renegSupport", 0)):
            self.wide(name, v(verdict))
        for name, verdict in dd.poodle(d):
            self.wide(name, v(verdict))

        self.wide("DROWN", v(dd.drown(d)))
        self.wide("Logjam", v(dd.Verdict("Vulnerable", dd.BAD) if d.get("logjam") else dd.NO))
        self.wide("Freak", v(dd.Verdict("Vulnerable", dd.BAD) if d.get("freak") else dd.NO))
        self.wide(
            "Downgrade attack prevention",
            v(dd.Verdict("Yes, TLS_FALLBACK_SCSV supported", dd.GOOD))
            if d.get("fallbackScsv")
            else v(dd.Verdict("No, TLS_FALLBACK_SCSV not supported", dd.WARN)),
        )
        self.wide(
            "SSL/TLS compression",
            v(dd.Verdict("Vulnerable (INSECURE)", dd.BAD))
            if d.get("compressionMethods")
            else "No",
        )
        self.wide("RC4", v(dd.Verdict("Yes (INSECURE)", dd.BAD)) if d.get("supportsRc4") else "No")
        self.wide("Heartbeat (extension)", dd.yes_no(d.get("heartbeat", False)))
        self.wide(
            "Heartbleed (vulnerability)",
            v(dd.Verdict("Vulnerable (INSECURE)", dd.BAD)) if d.get("heartbleed") else "No",
        )
        self.wide("Ticketbleed (vulnerability)", v(dd.decode(d.get("ticketbleed"), dd.TICKETBLEED)))
        self.wide("OpenSSL CCS vuln.", v(dd.decode(d.get("openSslCcs"), dd.OPENSSL_CCS)))
        self.wide(
            "OpenSSL Padding Oracle vuln.",
            v(dd.decode(d.get("openSSLLuckyMinus20"), dd.LUCKY_MINUS_20)),
        )
        self.wide("ROBOT (vulnerability)", v(dd.decode(d.get("bleichenbacher"), dd.BLEICHENBACHER)))
        self.wide("Forward Secrecy", v(dd.forward_secrecy(d)))

        alpn = d.get("alpnProtocols", "")
        self.wide("ALPN", f"Yes {self.c.style(f'({alpn})', dim=True)}" if d.get("supportsAlpn") else "No")
        npn = d.get("npnProtocols", "")
        self.wide("NPN", f"Yes {self.c.style(f'({npn})', dim=True)}" if d.get("supportsNpn") else "No")
        self.wide("SNI Required", dd.yes_no(d.get("sniRequired", False)))

        self.wide(
            "Session resumption (caching)",
            v(dd.decode(d.get("sessionResumption"), dd.SESSION_RESUMPTION, dd.Verdict("Unknown"))),
        )
        self.wide("Session resumption (tickets)", v(dd.session_tickets(d.get("sessionTickets", 0))))
        self.wide(
            "OCSP stapling",
            self.c.style("Yes", dd.GOOD) if d.get("ocspStapling") else "No",
        )

        self.wide("Strict Transport Security (HSTS)", v(dd.hsts(d)))
        preloads = dd.hsts_preloads(d)
        if preloads and dd.hsts(d).level == dd.GOOD:
            self.wide(
                "HSTS Preloading",
                " ".join(
                    self.c.style(src, dd.GOOD) if on else self.c.style(src, dim=True)
                    for src, on in preloads
                ),
            )

        for label, key in (
            ("Public Key Pinning (HPKP)", "hpkpPolicy"),
            ("Public Key Pinning Report-Only", "hpkpRoPolicy"),
        ):
            policy = d.get(key)
            verdict = dd.hpkp(policy)
            self.wide(label, v(verdict))
            if verdict.level == dd.GOOD:
                for pin in dd.hpkp_pins(policy):
                    self.wide("", self.c.style(pin, dim=True))

        for name, verdict in dd.misc_intolerance(d.get("miscIntolerance", 0)):
            self.wide(name, v(verdict))
        self.wide("TLS version intolerance", v(dd.protocol_intolerance(d.get("protocolIntolerance", 0))))

        self.wide("Uses common DH primes", v(dd.decode(d.get("dhUsesKnownPrimes", 0), dd.DH_KNOWN_PRIMES)))
        self.wide("DH public server param (Ys) reuse", v(dd.Verdict("Yes", dd.WARN)) if d.get("dhYsReuse") else "No")
        self.wide(
            "ECDH public server param reuse",
            v(dd.Verdict("Yes", dd.WARN)) if d.get("ecdhParameterReuse") else "No",
        )

        groups = (d.get("namedGroups") or {}).get("list") or []
        if groups:
            text = ", ".join(g.get("name", "") for g in groups)
            if (d.get("namedGroups") or {}).get("preference"):
                text += self.c.style(" (server preferred order)", dim=True)
            self.wide("Supported Named Groups", text)
        else:
            self.wide("Supported Named Groups", "—")

        zero_rtt = d.get("zeroRTTEnabled", -1)
        if zero_rtt != -1:
            self.wide("0-RTT", v(dd.decode(zero_rtt, dd.ZERO_RTT)))

    def transactions(self, d: dict) -> None:
        items = d.get("httpTransactions") or []
        if not items:
            return
        self.header("HTTP Requests")
        for index, t in enumerate(items, 1):
            self.out(
                f" {self.c.style(str(index), dim=True)} {t.get('requestUrl', '')} "
                f"{self.c.style('(' + t.get('responseLine', '') + ')', dim=True)}"
            )

    def misc(self, endpoint: EndpointInfo) -> None:
        d = endpoint.details
        self.header("Miscellaneous")

        started = d.get("hostStartTime")
        if started:
            when = datetime.fromtimestamp(started / 1000, tz=timezone.utc)
            self.row("Test date", when.strftime(DATE_FMT))
        self.row("Test duration", f"{endpoint.duration / 1000:.1f}s")

        code = d.get("httpStatusCode", 0)
        if code:
            self.row("HTTP status code", str(code))
        else:
            self.row("HTTP status code", self.c.style("Request failed", dd.WARN))

        forwarding = d.get("httpForwarding", "")
        if forwarding:
            if "http://" in forwarding:
                self.row("HTTP forwarding", self.c.style(f"{forwarding} (PLAINTEXT)", dd.WARN))
            else:
                self.row("HTTP forwarding", forwarding)

        self.row("HTTP server signature", d.get("serverSignature") or "Unknown")
        self.row("Server hostname", endpoint.server_name or "—")
