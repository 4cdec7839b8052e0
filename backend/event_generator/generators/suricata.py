"""
Suricata Generator
Suricata IDS/IPS events in EVE JSON format.
"""
from datetime import datetime, timedelta

from event_generator.base import EVE_TIME_FORMAT, EventGenerator
from event_generator.models import EventTemplate, EventType, FieldMap


SIGNATURES = [
    (2100498, "GPL ATTACK_RESPONSE id check returned root", "Potentially Bad Traffic"),
    (2013028, "ET POLICY curl User-Agent Outbound", "Potential Corporate Privacy Violation"),
    (2027757, "ET TROJAN CoinMiner Known Malicious Stratum Authline", "A Network Trojan was Detected"),
    (2024792, "ET MALWARE Win32/Emotet CnC Activity", "A Network Trojan was Detected"),
    (2025019, "ET MALWARE Cobalt Strike Beacon Detected", "A Network Trojan was Detected"),
    (2210054, "SURICATA STREAM Packet with broken ack", "Generic Protocol Command Decode"),
    (2019876, "ET SCAN Potential SSH Scan", "Attempted Information Leak"),
    (2008578, "ET SCAN Nmap Scripting Engine User-Agent Detected", "Attempted Information Leak"),
    (2016149, "ET INFO EXE Download Request With Unusual Agent", "Potentially Bad Traffic"),
]

TCP_FLAGS = ["1f", "1b", "12", "18", "10"]


def _eve_time(ts: datetime) -> str:
    return ts.strftime(EVE_TIME_FORMAT)


class SuricataGenerator(EventGenerator):
    """Generates Suricata EVE records: alerts, flows and protocol logs"""

    event_type = EventType(
        id="suricata",
        name="Suricata IDS",
        category="network",
        description="Suricata IDS/IPS EVE JSON format events including alerts, flows, and DNS",
        event_ids=["alert", "flow", "dns", "http", "tls", "fileinfo"],
    )
    templates = [
        EventTemplate(id="alert", name="Alert Event", category="suricata", event_id="alert",
                      format="json", description="Suricata IDS alert event in EVE JSON format"),
        EventTemplate(id="flow", name="Flow Event", category="suricata", event_id="flow",
                      format="json", description="Network flow record"),
        EventTemplate(id="dns", name="DNS Event", category="suricata", event_id="dns",
                      format="json", description="DNS query and response event"),
        EventTemplate(id="http", name="HTTP Event", category="suricata", event_id="http",
                      format="json", description="HTTP request and response event"),
        EventTemplate(id="tls", name="TLS Event", category="suricata", event_id="tls",
                      format="json", description="TLS handshake and certificate event"),
        EventTemplate(id="fileinfo", name="File Info Event", category="suricata", event_id="fileinfo",
                      format="json", description="File extraction and analysis event"),
    ]
    sourcetype = "suricata"

    def __init__(self, rng=None):
        super().__init__(rng)
        self.builders = {
            "alert": self._alert,
            "flow": self._flow,
            "dns": self._dns,
            "http": self._http,
            "tls": self._tls,
            "fileinfo": self._fileinfo,
        }

    def _header(self, now: datetime, event_type: str) -> FieldMap:
        return {
            "timestamp": _eve_time(now),
            "flow_id": self.random_int(1000000000000, 9999999999999),
            "in_iface": f"eth{self.random_int(0, 3)}",
            "event_type": event_type,
        }

    def _alert(self, now: datetime) -> FieldMap:
        sid, signature, category = self.random_choice(SIGNATURES)
        fields = self._header(now, "alert")
        fields.update({
            "src_ip": self.random_ipv4_external(),
            "src_port": self.random_port(),
            "dest_ip": self.random_ipv4_internal(),
            "dest_port": self.random_common_port(),
            "proto": self.random_choice(["TCP", "UDP"]),
            "alert": {
                "action": self.random_choice(["allowed", "blocked"]),
                "gid": 1,
                "signature_id": sid,
                "rev": self.random_int(1, 10),
                "signature": signature,
                "category": category,
                "severity": self.random_int(1, 3),
            },
            "app_proto": self.random_choice(["http", "tls", "dns", "ssh", "smtp", "ftp", "smb"]),
            "flow": {
                "pkts_toserver": self.random_int(1, 1000),
                "pkts_toclient": self.random_int(1, 1000),
                "bytes_toserver": self.random_int(100, 1000000),
                "bytes_toclient": self.random_int(100, 1000000),
                "start": _eve_time(now - timedelta(seconds=self.random_int(1, 3600))),
            },
            "host": self.random_hostname(),
        })
        return fields

    def _flow(self, now: datetime) -> FieldMap:
        start = now - timedelta(seconds=self.random_int(1, 3600))
        fields = self._header(now, "flow")
        fields.update({
            "src_ip": self.random_ipv4_internal(),
            "src_port": self.random_port(),
            "dest_ip": self.random_ipv4_external(),
            "dest_port": self.random_common_port(),
            "proto": self.random_choice(["TCP", "UDP"]),
            "app_proto": self.random_choice(["http", "tls", "dns", "ssh", "failed"]),
            "flow": {
                "pkts_toserver": self.random_int(1, 10000),
                "pkts_toclient": self.random_int(1, 10000),
                "bytes_toserver": self.random_int(100, 100000000),
                "bytes_toclient": self.random_int(100, 100000000),
                "start": _eve_time(start),
                "end": _eve_time(now),
                "age": int((now - start).total_seconds()),
                "state": self.random_choice(["new", "established", "closed"]),
                "reason": self.random_choice(["timeout", "forced", "shutdown"]),
                "alerted": self.random_bool(),
            },
            "tcp": {
                "tcp_flags": self.random_choice(TCP_FLAGS),
                "tcp_flags_ts": self.random_choice(TCP_FLAGS),
                "tcp_flags_tc": self.random_choice(TCP_FLAGS),
                "syn": True,
                "fin": self.random_bool(),
                "rst": self.random_bool(),
                "psh": self.random_bool(),
                "ack": True,
                "state": self.random_choice(["established", "closed", "syn_sent", "syn_recv"]),
            },
            "host": self.random_hostname(),
        })
        return fields

    def _dns(self, now: datetime) -> FieldMap:
        fields = self._header(now, "dns")
        fields.update({
            "src_ip": self.random_ipv4_internal(),
            "src_port": self.random_port(),
            "dest_ip": self.random_choice(["8.8.8.8", "8.8.4.4", "1.1.1.1", "9.9.9.9"]),
            "dest_port": 53,
            "proto": "UDP",
            "dns": {
                "type": self.random_choice(["query", "answer"]),
                "id": self.random_int(1, 65535),
                "flags": "8180",
                "qr": True,
                "rd": True,
                "ra": True,
                "rrname": self.random_choice([
                    "www.google.com", "api.microsoft.com", "cdn.cloudflare.com",
                    "github.com", "aws.amazon.com", "login.microsoftonline.com",
                ]),
                "rrtype": self.random_choice(["A", "AAAA", "CNAME", "MX", "TXT", "PTR", "NS", "SOA"]),
                "rcode": self.random_choice(["NOERROR", "NXDOMAIN", "SERVFAIL", "REFUSED"]),
                "ttl": self.random_int(60, 86400),
                "rdata": self.random_ipv4_external(),
            },
            "host": self.random_hostname(),
        })
        return fields

    def _http(self, now: datetime) -> FieldMap:
        hostname = f"www.{self.random_string(8).lower()}.com"
        fields = self._header(now, "http")
        fields.update({
            "src_ip": self.random_ipv4_internal(),
            "src_port": self.random_port(),
            "dest_ip": self.random_ipv4_external(),
            "dest_port": self.random_choice([80, 443, 8080, 8443]),
            "proto": "TCP",
            "tx_id": self.random_int(0, 10),
            "http": {
                "hostname": hostname,
                "url": f"/{self.random_string(8)}/{self.random_string(12)}",
                "http_user_agent": self.random_choice([
                    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
                    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
                    "curl/7.68.0",
                    "python-requests/2.25.1",
                    "Wget/1.21",
                ]),
                "http_content_type": self.random_choice(
                    ["text/html", "application/json", "text/plain", "application/xml"]
                ),
                "http_method": self.random_choice(["GET", "POST", "PUT", "DELETE", "HEAD", "OPTIONS"]),
                "protocol": "HTTP/1.1",
                "status": self.random_choice([200, 201, 301, 302, 400, 401, 403, 404, 500]),
                "length": self.random_int(100, 100000),
                "http_refer": f"https://{hostname}/",
                "redirect": "",
            },
            "host": self.random_hostname(),
        })
        return fields

    def _tls(self, now: datetime) -> FieldMap:
        sni = f"www.{self.random_string(8).lower()}.com"
        not_before = now - timedelta(days=self.random_int(30, 365))
        not_after = now + timedelta(days=self.random_int(30, 365))
        serial = ":".join(f"{self.random_int(0, 255):02X}" for _ in range(8))
        fields = self._header(now, "tls")
        fields.update({
            "src_ip": self.random_ipv4_internal(),
            "src_port": self.random_port(),
            "dest_ip": self.random_ipv4_external(),
            "dest_port": 443,
            "proto": "TCP",
            "tls": {
                "subject": f"CN={sni}",
                "issuerdn": "CN={}, O={}".format(
                    self.random_choice(["R3", "E1", "DigiCert SHA2"]),
                    self.random_choice([
                        "DigiCert Inc", "Let's Encrypt", "GlobalSign",
                        "Amazon", "Google Trust Services LLC",
                    ]),
                ),
                "serial": serial,
                "fingerprint": ":".join(self.random_hex(2) for _ in range(20)),
                "sni": sni,
                "version": self.random_choice(["TLS 1.2", "TLS 1.3", "TLSv1.2", "TLSv1.3"]),
                "notbefore": not_before.strftime("%Y-%m-%dT%H:%M:%S"),
                "notafter": not_after.strftime("%Y-%m-%dT%H:%M:%S"),
                "ja3": {
                    "hash": self.random_hex(32),
                    "string": "771,4865-4866-4867-49195,0-23-65281-10-11-35-16-5-13-18-51-45-43-27-21,29-23-24,0",
                },
                "ja3s": {
                    "hash": self.random_hex(32),
                    "string": "771,4865,43-51",
                },
            },
            "host": self.random_hostname(),
        })
        return fields

    def _fileinfo(self, now: datetime) -> FieldMap:
        filename, magic = self.random_choice([
            ("document.pdf", "PDF document"),
            ("report.docx", "Microsoft Word 2007+"),
            ("image.png", "PNG image data"),
            ("script.js", "JavaScript source"),
            ("archive.zip", "Zip archive data"),
            ("setup.exe", "PE32 executable"),
            ("data.json", "JSON data"),
        ])
        fields = self._header(now, "fileinfo")
        fields.update({
            "src_ip": self.random_ipv4_external(),
            "src_port": self.random_common_port(),
            "dest_ip": self.random_ipv4_internal(),
            "dest_port": self.random_port(),
            "proto": "TCP",
            "app_proto": self.random_choice(["http", "smtp", "ftp", "smb"]),
            "fileinfo": {
                "filename": filename,
                "magic": magic,
                "gaps": False,
                "state": "CLOSED",
                "md5": self.random_hex(32),
                "sha1": self.random_hex(40),
                "sha256": self.random_hex(64),
                "stored": self.random_bool(),
                "file_id": self.random_int(1, 1000),
                "size": self.random_int(100, 10000000),
                "tx_id": self.random_int(0, 10),
            },
            "host": self.random_hostname(),
        })
        return fields
