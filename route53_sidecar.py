#!/usr/bin/env python3
"""
route53-sidecar - Keep a DNS name pointed at this host while it is alive

Publishes an A record for this host when the sidecar starts, waits for the
change to propagate, and on SIGTERM/SIGINT retracts the record and waits out
its TTL before exiting. Built for VM instances and container tasks that come
and go and need a resolvable name only while they are healthy.

Options (environment variable or --flag, flags win):
    DNS: DNS name to register (default: my.example.com)
    HOSTEDZONE: Route 53 hosted zone id, or zone name for TSIG (default: Z2AAAABCDEFGT4)
    DNSTTL: TTL of the record in seconds (default: 10)
    IPADDRESS: Address to publish (default: public-ipv4)
        public-ipv4 / local-ipv4: EC2 instance metadata
        ecs: ECS task metadata (ECS_CONTAINER_METADATA_URI_V4)
        docker: this container's address on the Docker engine
        anything else: used literally
    REGISTER: Register the record and exit (default: false)
    UNREGISTER: Unregister the record and exit (default: false)
    SETUPDELAY: Seconds to wait before registering (default: 10)

Environment Variables:
    DNS_PROVIDER: 'route53' (default) or 'tsig'
    LOG_LEVEL: Logging level (default: INFO)
    DEFAULT_NETWORK: Docker network(s) to take the address from (comma-separated)

    # TSIG (BIND/PowerDNS) specific:
    DNS_SERVER: DNS server FQDN or IP address
    TSIG_KEY_NAME: TSIG key name
    TSIG_KEY_SECRET: Base64-encoded TSIG key
    TSIG_ALGORITHM: TSIG algorithm (default: hmac-sha256)
"""

import os
import sys
import time
import enum
import signal
import socket
import ipaddress
import logging
import argparse
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from dataclasses import dataclass, field

import boto3
import docker
from docker.errors import DockerException
import requests
import dns.name
import dns.query
import dns.rcode
import dns.update
import dns.message
import dns.rdatatype
import dns.exception
import dns.tsigkeyring
from botocore.exceptions import BotoCoreError, ClientError

__version__ = '0.1.0'

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s'
)
log = logging.getLogger(__name__)

RECORD_TYPE = 'A'
RECORD_WEIGHT = 100
CHANGE_COMMENT = 'route53-sidecar'

POLL_INTERVAL = 5.0
MAX_QUERY_FAILURES = 3
METADATA_TIMEOUT = 1.0

IMDS_URL = 'http://169.254.169.254/latest'
ECS_METADATA_ENV = ('ECS_CONTAINER_METADATA_URI_V4', 'ECS_CONTAINER_METADATA_URI')

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off', '')


class SidecarError(RuntimeError):
    """Base class for conditions that stop the sidecar"""


class ConfigError(SidecarError):
    """Invalid or missing configuration"""


class AddressUnavailable(SidecarError):
    """The address to publish could not be determined"""


class DirectoryError(SidecarError):
    """The DNS provider rejected or failed a call"""


class ChangeSubmissionError(SidecarError):
    """A change that must succeed could not be submitted"""


class PropagationError(SidecarError):
    """Change status could not be determined within the failure budget"""


class ChangeAction(enum.Enum):
    UPSERT = 'UPSERT'
    DELETE = 'DELETE'


class PropagationStatus(enum.Enum):
    PENDING = 'PENDING'
    INSYNC = 'INSYNC'


class LifecyclePhase(enum.Enum):
    IDLE = 'idle'
    PUBLISHING = 'publishing'
    PUBLISHED = 'published'
    RETRACTING = 'retracting'
    RETRACTED = 'retracted'
    FAILED = 'failed'


class RunMode(enum.Enum):
    REGISTER = 'register'
    UNREGISTER = 'unregister'
    LIFECYCLE = 'lifecycle'


@dataclass(frozen=True)
class RecordSpec:
    """The A record this sidecar owns for one run"""
    name: str  # e.g., "my.example.com"
    zone_id: str  # Route 53 hosted zone id, or zone name for TSIG
    address: str
    ttl: int = 10
    record_type: str = field(default=RECORD_TYPE, init=False)
    weight: int = field(default=RECORD_WEIGHT, init=False)

    @property
    def set_identifier(self) -> str:
        """Weighted siblings are told apart by their own address"""
        return self.address


@dataclass(frozen=True)
class ChangeRequest:
    action: ChangeAction
    record: RecordSpec
    comment: Optional[str] = None


def _parse_bool(name: str, value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _split_list(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


@dataclass
class SidecarConfig:
    """Validated sidecar configuration"""
    dns: str = 'my.example.com'
    hosted_zone: str = 'Z2AAAABCDEFGT4'
    dns_ttl: int = 10
    ip_address: str = 'public-ipv4'
    register: bool = False
    unregister: bool = False
    setup_delay: int = 10
    provider: str = 'route53'
    dns_server: Optional[str] = None
    tsig_key_name: Optional[str] = None
    tsig_key_secret: Optional[str] = None
    tsig_algorithm: str = 'hmac-sha256'
    default_networks: List[str] = field(default_factory=list)
    log_level: str = 'INFO'

    # option name -> (attribute, parser)
    OPTIONS = {
        'dns': ('dns', None),
        'hostedzone': ('hosted_zone', None),
        'dnsttl': ('dns_ttl', _parse_int),
        'ipaddress': ('ip_address', None),
        'register': ('register', _parse_bool),
        'unregister': ('unregister', _parse_bool),
        'setupdelay': ('setup_delay', _parse_int),
    }

    @classmethod
    def build_parser(cls) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog='route53-sidecar',
            description='Publish an A record for this host while it runs',
            allow_abbrev=False,
        )
        parser.add_argument('-dns', '--dns', help='DNS name to register')
        parser.add_argument('-hostedzone', '--hostedzone', help='Hosted zone id (or zone name for TSIG)')
        parser.add_argument('-dnsttl', '--dnsttl', help='TTL of the record in seconds')
        parser.add_argument('-ipaddress', '--ipaddress',
                            help='public-ipv4, local-ipv4, ecs, docker or a literal address')
        parser.add_argument('-register', '--register', nargs='?', const='true',
                            help='Register DNS and exit')
        parser.add_argument('-unregister', '--unregister', nargs='?', const='true',
                            help='Unregister DNS and exit')
        parser.add_argument('-setupdelay', '--setupdelay',
                            help='Wait time before setting up DNS (in seconds)')
        parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
        return parser

    @classmethod
    def from_args(cls, argv: Optional[Sequence[str]] = None,
                  environ: Optional[Mapping[str, str]] = None) -> 'SidecarConfig':
        """Read options from the environment, then let command-line flags override them"""
        environ = os.environ if environ is None else environ
        args = cls.build_parser().parse_args(argv)

        config = cls()
        for option, (attribute, parser) in cls.OPTIONS.items():
            value = getattr(args, option)
            if value is None:
                value = environ.get(option.upper())
            if value is None:
                continue
            setattr(config, attribute, parser(option, value) if parser else value.strip())

        config.provider = environ.get('DNS_PROVIDER', config.provider).strip().lower()
        config.dns_server = environ.get('DNS_SERVER') or None
        config.tsig_key_name = environ.get('TSIG_KEY_NAME') or None
        config.tsig_key_secret = environ.get('TSIG_KEY_SECRET') or None
        config.tsig_algorithm = environ.get('TSIG_ALGORITHM', config.tsig_algorithm)
        config.default_networks = _split_list(environ.get('DEFAULT_NETWORK'))
        config.log_level = environ.get('LOG_LEVEL', config.log_level).upper()

        config.validate()
        return config

    def validate(self):
        if not self.dns:
            raise ConfigError("dns must not be empty")
        if not self.hosted_zone:
            raise ConfigError("hostedzone must not be empty")
        if not self.ip_address:
            raise ConfigError("ipaddress must not be empty")
        if self.dns_ttl < 0:
            raise ConfigError(f"dnsttl must be >= 0, got {self.dns_ttl}")
        if self.setup_delay < 0:
            raise ConfigError(f"setupdelay must be >= 0, got {self.setup_delay}")
        if self.register and self.unregister:
            raise ConfigError("register and unregister are mutually exclusive")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(f"Unknown LOG_LEVEL {self.log_level!r}")
        if self.provider not in ('route53', 'tsig'):
            raise ConfigError("DNS_PROVIDER must be 'route53' or 'tsig'")
        if self.provider == 'tsig':
            if not self.dns_server:
                raise ConfigError("DNS_SERVER is required for TSIG")
            if not self.tsig_key_name or not self.tsig_key_secret:
                raise ConfigError("TSIG_KEY_NAME and TSIG_KEY_SECRET required for TSIG")

    @property
    def mode(self) -> RunMode:
        if self.register:
            return RunMode.REGISTER
        if self.unregister:
            return RunMode.UNREGISTER
        return RunMode.LIFECYCLE

    def record_spec(self, address: str) -> RecordSpec:
        return RecordSpec(self.dns, self.hosted_zone, address, self.dns_ttl)

    def dump(self):
        log.info("route53-sidecar Configuration:")
        log.info(f"  Version: {__version__}")
        log.info(f"  Provider: {self.provider}")
        log.info(f"  DNS: {self.dns}")
        log.info(f"  DNS TTL: {self.dns_ttl}")
        log.info(f"  Hosted Zone: {self.hosted_zone}")
        log.info(f"  IP Address: {self.ip_address}")
        log.info(f"  Setup Delay: {self.setup_delay}")
        log.info(f"  Mode: {self.mode.value}")


class AddressResolver:
    """Determines the IPv4 address to publish"""

    METADATA_PATHS = ('public-ipv4', 'local-ipv4')

    def __init__(self, source: str, environ: Optional[Mapping[str, str]] = None,
                 networks: Optional[List[str]] = None):
        self.source = source
        self.environ = os.environ if environ is None else environ
        self.networks = networks or []

    def resolve(self) -> str:
        if not self.source:
            raise AddressUnavailable("No address source configured")
        if self.source in self.METADATA_PATHS:
            return self.from_instance_metadata(self.source)
        if self.source == 'ecs':
            return self.from_task_metadata()
        if self.source == 'docker':
            return self.from_docker()
        return self.source

    def _imds_token(self) -> Optional[str]:
        """Fetch an IMDSv2 session token; None falls back to IMDSv1"""
        try:
            resp = requests.put(
                f'{IMDS_URL}/api/token',
                headers={'X-aws-ec2-metadata-token-ttl-seconds': '21600'},
                timeout=METADATA_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.text
        except requests.RequestException as e:
            log.debug(f"IMDSv2 token unavailable, using IMDSv1: {e}")
            return None

    def from_instance_metadata(self, path: str) -> str:
        log.info(f"Fetching IP Address from EC2 {path}")
        token = self._imds_token()
        headers = {'X-aws-ec2-metadata-token': token} if token else {}
        try:
            resp = requests.get(f'{IMDS_URL}/meta-data/{path}', headers=headers,
                                timeout=METADATA_TIMEOUT)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise AddressUnavailable(
                f"Unable to retrieve {path} from the EC2 metadata: {e}") from e

        address = resp.text.strip()
        if not address:
            raise AddressUnavailable(f"EC2 metadata returned an empty {path}")
        return address

    def from_task_metadata(self) -> str:
        log.info("Fetching IP Address from ECS metadata")
        uri = None
        for name in ECS_METADATA_ENV:
            uri = self.environ.get(name)
            if uri:
                break
        if not uri:
            raise AddressUnavailable(f"{ECS_METADATA_ENV[0]} is not set")

        try:
            resp = requests.get(uri, timeout=METADATA_TIMEOUT)
            resp.raise_for_status()
            metadata = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise AddressUnavailable(f"Failed to fetch ECS metadata: {e}") from e

        if not isinstance(metadata, dict):
            raise AddressUnavailable("Malformed ECS metadata document")
        if str(metadata.get('DesiredStatus', '')).upper() == 'STOPPED':
            raise AddressUnavailable("ECS container is being stopped")

        try:
            return metadata['Networks'][0]['IPv4Addresses'][0]
        except (KeyError, IndexError, TypeError):
            raise AddressUnavailable("ECS metadata lists no IPv4 address") from None

    def from_docker(self) -> str:
        """Address of this container on the Docker engine, found by hostname"""
        container_id = socket.gethostname()
        log.info(f"Fetching IP Address for container {container_id} from Docker")
        try:
            container = docker.from_env().containers.get(container_id)
        except DockerException as e:
            raise AddressUnavailable(f"Unable to inspect container {container_id}: {e}") from e

        networks = container.attrs.get('NetworkSettings', {}).get('Networks', {}) or {}
        if self.networks:
            networks = {k: v for k, v in networks.items() if k in self.networks}

        for network_name, network_info in networks.items():
            if network_info.get('IPAddress'):
                log.debug(f"Found IPv4 {network_info['IPAddress']} on network {network_name}")
                return network_info['IPAddress']

        raise AddressUnavailable(f"Container {container.name} has no IPv4 address")


class DirectoryClient:
    """What the lifecycle needs from a DNS provider"""

    def submit_change(self, request: ChangeRequest):
        """Submit a change, returning a handle for query_change_status"""
        raise NotImplementedError

    def query_change_status(self, handle) -> PropagationStatus:
        raise NotImplementedError


class Route53Client(DirectoryClient):
    """Weighted A records in an AWS Route 53 hosted zone"""

    def __init__(self, client=None):
        self.client = client if client is not None else boto3.client('route53')

    @staticmethod
    def change_batch(request: ChangeRequest) -> Dict:
        record = request.record
        batch = {
            'Changes': [{
                'Action': request.action.value,
                'ResourceRecordSet': {
                    'Name': record.name,
                    'Type': record.record_type,
                    'TTL': record.ttl,
                    'Weight': record.weight,
                    'SetIdentifier': record.set_identifier,
                    'ResourceRecords': [{'Value': record.address}],
                },
            }],
        }
        if request.comment:
            batch['Comment'] = request.comment
        return batch

    def submit_change(self, request: ChangeRequest) -> str:
        try:
            resp = self.client.change_resource_record_sets(
                HostedZoneId=request.record.zone_id,
                ChangeBatch=self.change_batch(request),
            )
        except (BotoCoreError, ClientError) as e:
            raise DirectoryError(str(e)) from e
        return resp['ChangeInfo']['Id']

    def query_change_status(self, handle: str) -> PropagationStatus:
        try:
            resp = self.client.get_change(Id=handle)
        except (BotoCoreError, ClientError) as e:
            raise DirectoryError(str(e)) from e

        status = resp['ChangeInfo']['Status']
        if status == PropagationStatus.INSYNC.value:
            return PropagationStatus.INSYNC
        log.info(f"Route53 Change not yet propagated (ChangeInfo.Status = {status})...")
        return PropagationStatus.PENDING


@dataclass(frozen=True)
class TsigChange:
    """Handle for a dynamic update: the state the server should converge to"""
    name: str
    address: str
    present: bool


class TsigClient(DirectoryClient):
    """RFC 2136 dynamic updates signed with TSIG, for BIND/PowerDNS"""

    def __init__(self, server: str, key_name: str, key_secret: str,
                 algorithm: str = 'hmac-sha256', timeout: float = 5.0):
        self.server = server
        try:
            self.keyring = dns.tsigkeyring.from_text({key_name: key_secret})
        except (ValueError, dns.exception.DNSException) as e:
            raise ConfigError(f"Invalid TSIG key {key_name}: {e}") from e
        self.key_name = key_name
        self.algorithm = algorithm
        self.timeout = timeout
        log.info(f"Initialized TSIG client with key {key_name}")

    def submit_change(self, request: ChangeRequest) -> TsigChange:
        record = request.record
        name = dns.name.from_text(record.name)
        update = dns.update.UpdateMessage(
            zone=record.zone_id,
            keyring=self.keyring,
            keyalgorithm=self.algorithm
        )

        # only this host's rdata is touched; other hosts may share the name
        update.delete(name, record.record_type, record.address)
        if request.action is ChangeAction.UPSERT:
            update.add(name, record.ttl, record.record_type, record.address)

        try:
            response = dns.query.tcp(update, self.server, timeout=self.timeout)
        except (dns.exception.DNSException, OSError) as e:
            raise DirectoryError(f"DNS update to {self.server} failed: {e}") from e

        if response.rcode() != dns.rcode.NOERROR:
            error = dns.rcode.to_text(response.rcode())
            raise DirectoryError(f"DNS update failed for zone {record.zone_id}: {error}")

        return TsigChange(record.name, record.address, request.action is ChangeAction.UPSERT)

    def query_change_status(self, handle: TsigChange) -> PropagationStatus:
        query = dns.message.make_query(dns.name.from_text(handle.name), dns.rdatatype.A)
        try:
            response = dns.query.udp(query, self.server, timeout=self.timeout)
        except (dns.exception.DNSException, OSError) as e:
            raise DirectoryError(f"DNS query to {self.server} failed: {e}") from e

        addresses = set()
        for rrset in response.answer:
            if rrset.rdtype == dns.rdatatype.A:
                addresses.update(rdata.address for rdata in rrset)

        if (handle.address in addresses) == handle.present:
            return PropagationStatus.INSYNC
        log.info(f"{handle.name} not yet {'present' if handle.present else 'removed'} "
                 f"on {self.server}...")
        return PropagationStatus.PENDING


class CancelToken:
    """
    Cancellation flag with the threading.Event interface.

    set() is a plain assignment, so it is safe to call from a signal handler;
    wait() sleeps in short ticks and checks the flag in between.
    """

    TICK = 0.05

    def __init__(self):
        self._set = False

    def set(self):
        self._set = True

    def is_set(self) -> bool:
        return self._set

    def wait(self, timeout: Optional[float] = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._set:
            if deadline is None:
                time.sleep(self.TICK)
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            time.sleep(min(self.TICK, remaining))
        return True


def poll_until(probe: Callable[[], bool], cancel: CancelToken,
               interval: float = POLL_INTERVAL,
               max_failures: int = MAX_QUERY_FAILURES) -> bool:
    """
    Call probe every interval until it returns True.

    Returns False if cancel is set first. DirectoryErrors raised by probe are
    counted; more than max_failures of them raise PropagationError.
    """
    failures = 0
    while True:
        if cancel.wait(interval):
            return False

        try:
            done = probe()
        except DirectoryError as e:
            failures += 1
            log.warning(f"Failed getting change status ({failures}/{max_failures}): {e}")
            if failures > max_failures:
                raise PropagationError(
                    "Failed the maximum times getting change status") from e
            continue

        if done:
            return True


class ChangeWaiter:
    """Waits for a submitted change to be reported in sync"""

    def __init__(self, directory: DirectoryClient, interval: Optional[float] = None,
                 max_failures: int = MAX_QUERY_FAILURES):
        self.directory = directory
        self.interval = POLL_INTERVAL if interval is None else interval
        self.max_failures = max_failures

    def wait_for_sync(self, handle, cancel: CancelToken) -> bool:
        """True once in sync, False if cancelled while waiting"""
        def probe():
            return self.directory.query_change_status(handle) is PropagationStatus.INSYNC

        if poll_until(probe, cancel, self.interval, self.max_failures):
            log.info("DNS change completed")
            return True

        log.info("Shutdown requested, stop waiting for DNS change to propagate")
        return False


class ShutdownTrigger:
    """
    Turns SIGINT/SIGTERM into a one-shot cancellation token.

    The handler only assigns attributes: it takes no locks and does no I/O,
    so it cannot deadlock or re-enter a stream the interrupted code holds.
    """

    SIGNALS = (signal.SIGINT, signal.SIGTERM)

    def __init__(self):
        self.cancelled = CancelToken()
        self.received: Optional[int] = None
        self.ignored = 0

    def install(self) -> 'ShutdownTrigger':
        for signum in self.SIGNALS:
            signal.signal(signum, self.handle_signal)
        return self

    def handle_signal(self, signum, frame=None):
        if self.received is not None:
            self.ignored += 1
            return
        self.received = signum
        self.cancelled.set()

    @property
    def signal_name(self) -> Optional[str]:
        if self.received is None:
            return None
        return signal.Signals(self.received).name

    def wait(self):
        self.cancelled.wait()


class DNSLifecycle:
    """Publishes and retracts this host's record"""

    def __init__(self, directory: DirectoryClient, record: RecordSpec,
                 setup_delay: int = 0, waiter: Optional[ChangeWaiter] = None):
        self.directory = directory
        self.record = record
        self.setup_delay = setup_delay
        self.waiter = waiter or ChangeWaiter(directory)
        self.phase = LifecyclePhase.IDLE

    def publish(self, cancel: CancelToken):
        """
        Upsert the record and wait for it to propagate.

        A rejected submission is logged and swallowed so the caller still
        reaches teardown. Exhausting the status query budget is fatal.
        """
        record = self.record
        log.info(f"Setting up DNS Name A {record.name} => {record.address}")
        self.phase = LifecyclePhase.PUBLISHING

        if self.setup_delay > 0:
            log.info(f"Waiting {self.setup_delay} seconds before setting up DNS (SETUPDELAY)")
            time.sleep(self.setup_delay)
            log.info("Finished waiting")

        request = ChangeRequest(ChangeAction.UPSERT, record, comment=CHANGE_COMMENT)
        try:
            handle = self.directory.submit_change(request)
        except DirectoryError as e:
            log.error(f"Failed to create DNS: {e}")
            self.phase = LifecyclePhase.FAILED
            return

        log.info("Change request sent...")
        try:
            synced = self.waiter.wait_for_sync(handle, cancel)
        except PropagationError:
            self.phase = LifecyclePhase.FAILED
            raise
        if synced:
            self.phase = LifecyclePhase.PUBLISHED

    def retract(self, cancel: CancelToken):
        """Delete the record, wait for it to propagate, then drain the TTL"""
        record = self.record
        log.info(f"Tearing down DNS Name A {record.name} => {record.address}")
        self.phase = LifecyclePhase.RETRACTING

        request = ChangeRequest(ChangeAction.DELETE, record)
        try:
            handle = self.directory.submit_change(request)
        except DirectoryError as e:
            self.phase = LifecyclePhase.FAILED
            raise ChangeSubmissionError(f"Failed to delete DNS: {e}") from e

        log.info("Change request sent...")
        try:
            synced = self.waiter.wait_for_sync(handle, cancel)
        except PropagationError:
            self.phase = LifecyclePhase.FAILED
            raise
        if not synced:
            return

        log.info(f"Waiting for DNS Timeout to expire ({record.ttl} seconds)")
        time.sleep(record.ttl)
        log.info("DNS Timeout expiry finished")
        self.phase = LifecyclePhase.RETRACTED

    def run(self, mode: RunMode, trigger: Optional[ShutdownTrigger] = None):
        if mode is RunMode.REGISTER:
            self.publish(CancelToken())
        elif mode is RunMode.UNREGISTER:
            self.retract(CancelToken())
        else:
            if trigger is None:
                raise ValueError("Full lifecycle mode needs a shutdown trigger")
            self.publish(trigger.cancelled)
            log.info("Waiting for shutdown signal")
            trigger.wait()
            log.info(f"Received {trigger.signal_name}, shutting down")
            # teardown gets its own token so a second signal cannot abort it
            self.retract(CancelToken())
            if trigger.ignored:
                log.warning(f"Ignored {trigger.ignored} signal(s) received during teardown")


def build_directory(config: SidecarConfig) -> DirectoryClient:
    if config.provider == 'tsig':
        server = config.dns_server
        try:
            ipaddress.ip_address(server)
        except ValueError:  # Looks like FQDN
            try:
                server = socket.gethostbyname(server)
                log.info(f"Resolved DNS server IP: {server}")
            except OSError as e:
                raise ConfigError(f"Could not resolve IP for {config.dns_server}: {e}") from e
        return TsigClient(server, config.tsig_key_name, config.tsig_key_secret,
                          config.tsig_algorithm)

    try:
        return Route53Client()
    except BotoCoreError as e:
        raise ConfigError(f"Failed to initialize aws config: {e}") from e


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        config = SidecarConfig.from_args(argv)
    except ConfigError as e:
        log.error(str(e))
        return 1

    logging.getLogger().setLevel(config.log_level)
    config.dump()

    try:
        address = AddressResolver(config.ip_address, networks=config.default_networks).resolve()
        log.info(f"Resolved IP Address: {address}")
        directory = build_directory(config)

        trigger = None
        if config.mode is RunMode.LIFECYCLE:
            trigger = ShutdownTrigger().install()

        lifecycle = DNSLifecycle(directory, config.record_spec(address),
                                 setup_delay=config.setup_delay)
        lifecycle.run(config.mode, trigger)
    except SidecarError as e:
        log.error(f"{e}, exiting")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
