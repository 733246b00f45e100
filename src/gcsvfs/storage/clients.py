"""Builds storage clients bound to one of the supported kinds of Google credentials."""
from __future__ import annotations
import dataclasses
import enum
import json
import typing as t

import google.auth
import google.auth.exceptions
from google.auth import compute_engine
from google.auth.transport.requests import Request
from google.cloud import storage
import zrlog

from gcsvfs.util import ConfigError


class ClientType(enum.Enum):
    """Credential strategies, tagged with the integers used in configuration."""

    APPLICATION = 1
    STORAGE_ACCOUNT = 2
    COMPUTE_ENGINE = 3

    @staticmethod
    def from_tag(tag: t.Optional[int]) -> ClientType:
        if tag is None:
            raise InvalidClientTypeError(tag)
        try:
            return ClientType(int(tag))
        except (ValueError, TypeError) as ex:
            raise InvalidClientTypeError(tag) from ex


class InvalidClientTypeError(ConfigError):

    def __init__(self, tag):
        super().__init__(f"No suitable client type found for [{tag}]", 3001)


class MissingCredentialError(ConfigError):

    def __init__(self, msg: str = "Credential not found"):
        super().__init__(msg, 3002)


class CredentialParseError(ConfigError):

    def __init__(self, msg: str):
        super().__init__(msg, 3003)


@dataclasses.dataclass(frozen=True)
class BoundClient:
    """A storage client plus what is needed to compare it with other clients.

        Shared by every handle of a file system and never modified after creation.
    """

    client_type: ClientType
    client: storage.Client = dataclasses.field(compare=False)
    credential_identity: t.Optional[tuple] = None
    endpoint: t.Optional[str] = None


def credential_identity(credentials, project: t.Optional[str] = None) -> t.Optional[tuple]:
    """Summarize credentials so that two clients acting as the same principal compare equal."""
    if credentials is None:
        return None
    principal = getattr(credentials, "service_account_email", None) or getattr(credentials, "client_id", None)
    return credentials.__class__.__name__, principal, project


def _endpoint_url(hostname: str) -> str:
    if "://" in hostname:
        return hostname
    return f"https://{hostname}"


def select_client(client_type: t.Optional[int],
                  key_stream: t.Optional[bytes] = None,
                  hostname: t.Optional[str] = None) -> BoundClient:
    """Create a storage client for the given client type.

        - APPLICATION uses application default credentials (environment variables, gcloud, metadata server).
        - STORAGE_ACCOUNT uses the JSON key in key_stream, and targets hostname instead of the default
          endpoint when one is given.
        - COMPUTE_ENGINE asks the instance metadata server for credentials.

        Failures are not retried.
    """
    kind = ClientType.from_tag(client_type)
    log = zrlog.get_logger("gcsvfs.storage.clients")
    if kind == ClientType.STORAGE_ACCOUNT:
        if not key_stream:
            raise MissingCredentialError()
        try:
            info = json.loads(key_stream.decode("utf-8"))
            credentials, project = google.auth.load_credentials_from_dict(info)
        except (ValueError, AttributeError, google.auth.exceptions.GoogleAuthError) as ex:
            raise CredentialParseError(f"Could not parse credential key: {ex.__class__.__name__}: {str(ex)}") from ex
        endpoint = _endpoint_url(hostname) if hostname else None
        client = storage.Client(
            project=project,
            credentials=credentials,
            client_options={"api_endpoint": endpoint} if endpoint else None
        )
        log.info(f"Storage client created from credential key{'' if endpoint is None else f' for [{endpoint}]'}")
        return BoundClient(kind, client, credential_identity(credentials, project), endpoint)
    if hostname:
        log.warning(f"Hostname [{hostname}] is ignored for client type {kind.name}")
    if kind == ClientType.COMPUTE_ENGINE:
        credentials = compute_engine.Credentials()
        try:
            credentials.refresh(Request())
        except google.auth.exceptions.GoogleAuthError as ex:
            raise CredentialParseError(f"Could not obtain compute engine credentials: {str(ex)}") from ex
        client = storage.Client(project=None, credentials=credentials)
        log.info(f"Storage client created from compute engine credentials")
        return BoundClient(kind, client, credential_identity(credentials))
    try:
        credentials, project = google.auth.default()
    except google.auth.exceptions.DefaultCredentialsError as ex:
        raise MissingCredentialError(f"No application default credentials: {str(ex)}") from ex
    client = storage.Client(project=project, credentials=credentials)
    log.info(f"Storage client created from application default credentials")
    return BoundClient(kind, client, credential_identity(credentials, project))
