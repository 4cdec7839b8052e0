"""
AWS GuardDuty Generator
GuardDuty threat detection findings in the service's JSON finding schema.
"""
from datetime import datetime, timedelta

from event_generator.base import EventGenerator
from event_generator.models import EventTemplate, EventType, FieldMap


def _iso(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%dT%H:%M:%SZ")


def _finding_template(template_id: str, name: str, event_id: str, description: str) -> EventTemplate:
    return EventTemplate(
        id=template_id,
        name=name,
        category="aws_guardduty",
        event_id=event_id,
        format="json",
        description=description,
    )


class AWSGuardDutyGenerator(EventGenerator):
    """Generates GuardDuty findings against EC2 instances and IAM users"""

    event_type = EventType(
        id="aws_guardduty",
        name="AWS GuardDuty",
        category="cloud",
        description="AWS GuardDuty threat detection findings - malicious IPs, compromised instances, anomalous behavior",
        event_ids=[
            "UnauthorizedAccess:EC2/SSHBruteForce",
            "Recon:EC2/PortProbeUnprotectedPort",
            "CryptoCurrency:EC2/BitcoinTool",
            "UnauthorizedAccess:IAMUser/ConsoleLoginSuccess.B",
            "Trojan:EC2/BlackholeTraffic",
            "Backdoor:EC2/C2Activity",
        ],
    )
    templates = [
        _finding_template("SSHBruteForce", "SSH Brute Force", "UnauthorizedAccess:EC2/SSHBruteForce",
                          "EC2 instance is under SSH brute force attack"),
        _finding_template("PortProbe", "Port Probe", "Recon:EC2/PortProbeUnprotectedPort",
                          "EC2 instance has unprotected port being probed"),
        _finding_template("CryptoMining", "Crypto Mining", "CryptoCurrency:EC2/BitcoinTool",
                          "EC2 instance is communicating with cryptocurrency mining pool"),
        _finding_template("ConsoleLoginAnomaly", "Console Login Anomaly",
                          "UnauthorizedAccess:IAMUser/ConsoleLoginSuccess.B",
                          "Anomalous console login from unusual location"),
        _finding_template("BlackholeTraffic", "Blackhole Traffic", "Trojan:EC2/BlackholeTraffic",
                          "EC2 instance is sending traffic to known malicious IP"),
        _finding_template("C2Activity", "C2 Activity", "Backdoor:EC2/C2Activity",
                          "EC2 instance is communicating with command and control server"),
    ]
    sourcetype = "aws:guardduty"

    def __init__(self, rng=None):
        super().__init__(rng)
        self.builders = {
            "SSHBruteForce": self._ssh_brute_force,
            "PortProbe": self._port_probe,
            "CryptoMining": self._crypto_mining,
            "ConsoleLoginAnomaly": self._console_login_anomaly,
            "BlackholeTraffic": self._blackhole_traffic,
            "C2Activity": self._c2_activity,
        }

    # ---------- shared pieces ----------

    def _account_id(self) -> str:
        return f"{self.random_int(100000000000, 999999999999):012d}"

    def _region(self) -> str:
        return self.random_choice(["us-east-1", "us-east-2", "us-west-1", "us-west-2", "eu-west-1", "eu-central-1"])

    def _instance_id(self) -> str:
        return f"i-{self.random_hex(17)}"

    def _instance(self, instance_id: str, instance_types=("t3.micro", "t3.small", "m5.large")) -> FieldMap:
        return {
            "resourceType": "Instance",
            "instanceDetails": {
                "instanceId": instance_id,
                "instanceType": self.random_choice(list(instance_types)),
            },
        }

    def _base_finding(self, now: datetime, finding_type: str, title: str, description: str,
                      resource: FieldMap, action: FieldMap) -> FieldMap:
        account_id = self._account_id()
        region = self._region()
        severity, severity_label = self.random_choice([(2.0, "LOW"), (4.5, "MEDIUM"), (7.0, "HIGH"), (8.5, "HIGH")])
        return {
            "schemaVersion": "2.0",
            "accountId": account_id,
            "region": region,
            "partition": "aws",
            "id": self.random_guid(),
            "arn": f"arn:aws:guardduty:{region}:{account_id}:detector/{self.random_hex(32)}/finding/{self.random_guid()}",
            "type": finding_type,
            "resource": resource,
            "service": {
                "serviceName": "guardduty",
                "detectorId": self.random_hex(32),
                "action": action,
                "resourceRole": "TARGET",
                "additionalInfo": {
                    "threatListName": self.random_choice(["ProofPoint", "CrowdStrike", "ThreatIntelligence"]),
                },
                "eventFirstSeen": _iso(now - timedelta(hours=self.random_int(1, 24))),
                "eventLastSeen": _iso(now),
                "archived": False,
                "count": self.random_int(1, 100),
            },
            "severity": severity,
            "createdAt": _iso(now),
            "updatedAt": _iso(now),
            "title": title,
            "description": description,
            "confidence": self.random_int(60, 99),
            "severityLabel": severity_label,
        }

    def _dns_action(self, domains) -> FieldMap:
        return {
            "actionType": "DNS_REQUEST",
            "dnsRequestAction": {
                "domain": self.random_choice(domains),
                "protocol": "UDP",
                "blocked": False,
            },
        }

    # ---------- templates ----------

    def _ssh_brute_force(self, now: datetime) -> FieldMap:
        instance_id = self._instance_id()
        resource = self._instance(instance_id)
        resource["instanceDetails"].update({
            "launchTime": _iso(now - timedelta(days=self.random_int(1, 30))),
            "platform": "linux",
            "networkInterfaces": [{
                "privateIpAddress": self.random_ipv4_internal(),
                "publicIp": self.random_ipv4_external(),
            }],
        })
        action = {
            "actionType": "NETWORK_CONNECTION",
            "networkConnectionAction": {
                "connectionDirection": "INBOUND",
                "remoteIpDetails": {
                    "ipAddressV4": self.random_ipv4_external(),
                    "country": {"countryName": self.random_choice(["Russia", "China", "North Korea", "Iran"])},
                },
                "localPortDetails": {"port": 22, "portName": "SSH"},
                "protocol": "TCP",
                "blocked": False,
            },
        }
        return self._base_finding(
            now,
            "UnauthorizedAccess:EC2/SSHBruteForce",
            f"{self.random_ipv4_external()} is performing SSH brute force attacks against {instance_id}",
            "EC2 instance is being targeted by SSH brute force attack",
            resource, action,
        )

    def _port_probe(self, now: datetime) -> FieldMap:
        instance_id = self._instance_id()
        port, port_name = self.random_choice(
            [(3389, "RDP"), (22, "SSH"), (3306, "MySQL"), (5432, "PostgreSQL"), (27017, "MongoDB")]
        )
        action = {
            "actionType": "PORT_PROBE",
            "portProbeAction": {
                "portProbeDetails": [{
                    "localPortDetails": {"port": port, "portName": port_name},
                    "remoteIpDetails": {
                        "ipAddressV4": self.random_ipv4_external(),
                        "country": {"countryName": self.random_choice(["Russia", "China", "Unknown"])},
                    },
                }],
                "blocked": False,
            },
        }
        return self._base_finding(
            now,
            "Recon:EC2/PortProbeUnprotectedPort",
            f"Unprotected port on EC2 instance {instance_id} is being probed",
            "EC2 instance has an unprotected port which is being probed by a known malicious host",
            self._instance(instance_id), action,
        )

    def _crypto_mining(self, now: datetime) -> FieldMap:
        instance_id = self._instance_id()
        return self._base_finding(
            now,
            "CryptoCurrency:EC2/BitcoinTool.B!DNS",
            f"EC2 instance {instance_id} is querying a domain name associated with Bitcoin-related activity",
            "EC2 instance is communicating with cryptocurrency mining pool",
            self._instance(instance_id, ("c5.xlarge", "c5.2xlarge", "p3.2xlarge")),
            self._dns_action(["pool.minergate.com", "xmr.pool.minergate.com",
                              "stratum.slushpool.com", "eth.2miners.com"]),
        )

    def _console_login_anomaly(self, now: datetime) -> FieldMap:
        user_name = f"{self.random_choice(['admin', 'developer', 'devops'])}-{self.random_string(4).lower()}"
        resource = {
            "resourceType": "AccessKey",
            "accessKeyDetails": {
                "accessKeyId": "AKIA" + self.random_string(16).upper(),
                "principalId": self.random_string(21).upper(),
                "userType": "IAMUser",
                "userName": user_name,
            },
        }
        action = {
            "actionType": "AWS_API_CALL",
            "awsApiCallAction": {
                "api": "ConsoleLogin",
                "serviceName": "signin.amazonaws.com",
                "callerType": "Remote IP",
                "remoteIpDetails": {
                    "ipAddressV4": self.random_ipv4_external(),
                    "country": {"countryName": self.random_choice(
                        ["Russia", "China", "North Korea", "Iran", "Nigeria", "Romania"]
                    )},
                    "city": {"cityName": "Unknown"},
                },
            },
        }
        return self._base_finding(
            now,
            "UnauthorizedAccess:IAMUser/ConsoleLoginSuccess.B",
            f"Anomalous console login by {user_name}",
            "AWS console was successfully logged into from an unusual location",
            resource, action,
        )

    def _blackhole_traffic(self, now: datetime) -> FieldMap:
        instance_id = self._instance_id()
        action = {
            "actionType": "NETWORK_CONNECTION",
            "networkConnectionAction": {
                "connectionDirection": "OUTBOUND",
                "remoteIpDetails": {
                    "ipAddressV4": self.random_ipv4_external(),
                    "organization": {"asn": "AS12345", "asnOrg": "MaliciousHosting"},
                },
                "localPortDetails": {"port": self.random_port()},
                "remotePortDetails": {"port": 443},
                "protocol": "TCP",
                "blocked": False,
            },
        }
        return self._base_finding(
            now,
            "Trojan:EC2/BlackholeTraffic",
            f"EC2 instance {instance_id} is attempting to communicate with an IP address that is a known black hole",
            "EC2 instance is sending traffic to known malicious IP",
            self._instance(instance_id), action,
        )

    def _c2_activity(self, now: datetime) -> FieldMap:
        instance_id = self._instance_id()
        return self._base_finding(
            now,
            "Backdoor:EC2/C2Activity.B!DNS",
            f"EC2 instance {instance_id} is querying a domain name associated with a known C2 server",
            "EC2 instance is communicating with command and control server",
            self._instance(instance_id),
            self._dns_action(["malware-c2.evil.com", "command.badactor.net",
                              "control.threat.io", "beacon.apt.org"]),
        )
