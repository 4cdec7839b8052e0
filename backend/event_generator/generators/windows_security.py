"""
Windows Security Generator
Windows Security event log records rendered as Event XML.

The field map holds one key per EventData item plus a reserved "System" key
carrying the event header, so the XML is always rebuilt from fields alone.
"""
import json
import re
import xml.etree.ElementTree as ET
from datetime import datetime

from event_generator.base import EventGenerator
from event_generator.errors import SerializationError
from event_generator.models import EventTemplate, EventType, FieldMap, FieldValue


EVENT_NAMESPACE = "http://schemas.microsoft.com/win/2004/08/events/event"
SYSTEM_KEY = "System"

# characters XML 1.0 does not allow anywhere in a document
ILLEGAL_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

PRIVILEGES = [
    "SeSecurityPrivilege",
    "SeBackupPrivilege",
    "SeRestorePrivilege",
    "SeTakeOwnershipPrivilege",
    "SeDebugPrivilege",
    "SeSystemEnvironmentPrivilege",
    "SeLoadDriverPrivilege",
    "SeImpersonatePrivilege",
    "SeEnableDelegationPrivilege",
]


def xml_text(value: FieldValue) -> str:
    """
    Render a field value as XML character data.

    Raises SerializationError when the text holds a character XML 1.0
    cannot represent.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)

    match = ILLEGAL_XML_CHARS.search(text)
    if match:
        raise SerializationError(
            f"character {match.group()!r} at offset {match.start()} is not allowed in XML"
        )
    return text


def _template(event_code: str, name: str, description: str) -> EventTemplate:
    return EventTemplate(
        id=event_code,
        name=name,
        category="windows_security",
        event_id=event_code,
        format="xml",
        description=description,
    )


class WindowsSecurityGenerator(EventGenerator):
    """Generates logon, process and account management audit events"""

    event_type = EventType(
        id="windows_security",
        name="Windows Security",
        category="windows",
        description="Windows Security Event Log events including logon, process, and privilege events",
        event_ids=["4624", "4625", "4688", "4672", "4720"],
    )
    templates = [
        _template("4624", "Successful Logon", "An account was successfully logged on"),
        _template("4625", "Failed Logon", "An account failed to log on"),
        _template("4688", "Process Creation", "A new process has been created"),
        _template("4672", "Special Privileges Assigned", "Special privileges assigned to new logon"),
        _template("4720", "User Account Created", "A user account was created"),
    ]
    sourcetype = "WinEventLog:Security"

    def __init__(self, rng=None):
        super().__init__(rng)
        self.builders = {
            "4624": self._successful_logon,
            "4625": self._failed_logon,
            "4688": self._process_creation,
            "4672": self._special_privileges,
            "4720": self._user_created,
        }

    # ---------- serialization ----------

    def serialize(self, template: EventTemplate, fields: FieldMap) -> str:
        header = fields.get(SYSTEM_KEY, {})
        if not isinstance(header, dict):
            raise SerializationError(
                f"{SYSTEM_KEY} must be a mapping, got {type(header).__name__}"
            )

        root = ET.Element("Event", {"xmlns": EVENT_NAMESPACE})
        system = ET.SubElement(root, "System")
        ET.SubElement(system, "Provider", {
            "Name": xml_text(header.get("ProviderName", "Microsoft-Windows-Security-Auditing")),
            "Guid": xml_text(header.get("ProviderGuid", "{54849625-5478-4994-A5BA-3E3B0328C30D}")),
        })
        for tag in ("EventID", "Version", "Level", "Task", "Opcode", "Keywords"):
            ET.SubElement(system, tag).text = xml_text(header.get(tag, ""))
        ET.SubElement(system, "TimeCreated", {"SystemTime": xml_text(header.get("TimeCreated", ""))})
        ET.SubElement(system, "EventRecordID").text = xml_text(header.get("EventRecordID", ""))
        ET.SubElement(system, "Correlation")
        ET.SubElement(system, "Execution", {
            "ProcessID": xml_text(header.get("ProcessID", "")),
            "ThreadID": xml_text(header.get("ThreadID", "")),
        })
        ET.SubElement(system, "Channel").text = xml_text(header.get("Channel", "Security"))
        ET.SubElement(system, "Computer").text = xml_text(header.get("Computer", ""))
        ET.SubElement(system, "Security")

        event_data = ET.SubElement(root, "EventData")
        for name, value in fields.items():
            if name == SYSTEM_KEY:
                continue
            ET.SubElement(event_data, "Data", {"Name": xml_text(name)}).text = xml_text(value)

        ET.indent(root, space="  ")
        try:
            return ET.tostring(root, encoding="unicode")
        except (TypeError, ValueError) as e:
            raise SerializationError(f"failed to encode windows_security/{template.id} event: {e}") from e

    def _system(self, event_code: int, now: datetime) -> FieldMap:
        return {
            "ProviderName": "Microsoft-Windows-Security-Auditing",
            "ProviderGuid": "{54849625-5478-4994-A5BA-3E3B0328C30D}",
            "EventID": event_code,
            "Version": 2,
            "Level": 0,
            "Task": 12544,
            "Opcode": 0,
            "Keywords": "0x8020000000000000",
            "TimeCreated": now.strftime("%Y-%m-%dT%H:%M:%S.%f") + "000Z",
            "EventRecordID": self.random_int(100000, 99999999),
            "ProcessID": self.random_int(4, 1000),
            "ThreadID": self.random_int(100, 10000),
            "Channel": "Security",
            "Computer": self.random_fqdn(),
        }

    def _logon_id(self) -> str:
        return f"0x{self.random_int(100000, 9999999):x}"

    def _subject(self) -> FieldMap:
        return {
            "SubjectUserSid": self.random_sid(),
            "SubjectUserName": self.random_username(),
            "SubjectDomainName": self.random_domain(),
            "SubjectLogonId": self._logon_id(),
        }

    def _windows_path(self) -> str:
        base = self.random_choice([
            "C:\\Windows\\System32",
            "C:\\Program Files",
            "C:\\Program Files (x86)",
            f"C:\\Users\\{self.random_username()}\\AppData\\Local",
        ])
        return f"{base}\\{self.random_process_name()}"

    # ---------- templates ----------

    def _successful_logon(self, now: datetime) -> FieldMap:
        fields = {SYSTEM_KEY: self._system(4624, now)}
        fields.update(self._subject())
        fields.update({
            "TargetUserSid": self.random_sid(),
            "TargetUserName": self.random_username(),
            "TargetDomainName": self.random_domain(),
            "TargetLogonId": self._logon_id(),
            "LogonType": self.random_choice([2, 3, 7, 10, 11]),
            "LogonProcessName": "NtLmSsp",
            "AuthenticationPackageName": "NTLM",
            "WorkstationName": self.random_hostname(),
            "LogonGuid": self.random_guid(),
            "TransmittedServices": "-",
            "LmPackageName": "NTLM V2",
            "KeyLength": 128,
            "ProcessId": self.random_int(4, 65535),
            "ProcessName": "C:\\Windows\\System32\\lsass.exe",
            "IpAddress": self.random_ipv4_internal(),
            "IpPort": self.random_port(),
            "ImpersonationLevel": "%%1833",
            "ElevatedToken": "%%1842",
        })
        return fields

    def _failed_logon(self, now: datetime) -> FieldMap:
        status, sub_status, reason = self.random_choice([
            ("0xc000006d", "0xc000006a", "%%2313"),
            ("0xc000006d", "0xc0000064", "%%2313"),
            ("0xc0000234", "0x0", "%%2307"),
            ("0xc000006e", "0xc0000072", "%%2310"),
        ])
        fields = {SYSTEM_KEY: self._system(4625, now)}
        fields.update(self._subject())
        fields.update({
            "TargetUserSid": "S-1-0-0",
            "TargetUserName": self.random_username(),
            "TargetDomainName": self.random_domain(),
            "Status": status,
            "FailureReason": reason,
            "SubStatus": sub_status,
            "LogonType": self.random_choice([2, 3, 10]),
            "LogonProcessName": "NtLmSsp",
            "AuthenticationPackageName": "NTLM",
            "WorkstationName": self.random_hostname(),
            "TransmittedServices": "-",
            "LmPackageName": "-",
            "KeyLength": 0,
            "ProcessId": 0,
            "ProcessName": "-",
            "IpAddress": self.random_ipv4_external(),
            "IpPort": self.random_port(),
        })
        return fields

    def _process_creation(self, now: datetime) -> FieldMap:
        new_process = self._windows_path()
        fields = {SYSTEM_KEY: self._system(4688, now)}
        fields.update(self._subject())
        fields.update({
            "NewProcessId": f"0x{self.random_int(1000, 65535):x}",
            "NewProcessName": new_process,
            "TokenElevationType": "%%1936",
            "ProcessId": f"0x{self.random_int(1000, 65535):x}",
            "CommandLine": f"\"{new_process}\"",
            "TargetUserSid": "S-1-0-0",
            "TargetUserName": "-",
            "TargetDomainName": "-",
            "TargetLogonId": "0x0",
            "ParentProcessName": "C:\\Windows\\System32\\cmd.exe",
            "MandatoryLabel": "S-1-16-8192",
        })
        return fields

    def _special_privileges(self, now: datetime) -> FieldMap:
        count = self.random_int(1, 5)
        privileges = self.rng.sample(PRIVILEGES, count)
        fields = {SYSTEM_KEY: self._system(4672, now)}
        fields.update(self._subject())
        fields["PrivilegeList"] = "\n\t\t\t".join(privileges)
        return fields

    def _user_created(self, now: datetime) -> FieldMap:
        new_user = self.random_username()
        domain = self.random_domain()
        fields = {SYSTEM_KEY: self._system(4720, now)}
        fields.update({
            "TargetUserName": new_user,
            "TargetDomainName": domain,
            "TargetSid": self.random_sid(),
        })
        fields.update(self._subject())
        fields.update({
            "PrivilegeList": "-",
            "SamAccountName": new_user,
            "DisplayName": new_user,
            "UserPrincipalName": f"{new_user}@{domain.lower()}.local",
            "HomeDirectory": "-",
            "HomePath": "-",
            "ScriptPath": "-",
            "ProfilePath": "-",
            "UserWorkstations": "-",
            "PasswordLastSet": now.strftime("%m/%d/%Y %I:%M:%S %p"),
            "AccountExpires": "%%1794",
            "PrimaryGroupId": "513",
            "AllowedToDelegateTo": "-",
            "OldUacValue": "0x0",
            "NewUacValue": "0x15",
            "UserAccountControl": "%%2080\n\t\t%%2082\n\t\t%%2084",
            "UserParameters": "-",
            "SidHistory": "-",
            "LogonHours": "%%1793",
        })
        return fields
