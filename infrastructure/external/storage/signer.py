"""AWS Signature Version 4 request signing for S3-compatible APIs.

Pure functions: no I/O, no shared state. The only ambient input is the
clock, which callers may pin through ``now``.
"""
import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, NamedTuple, Optional

ALGORITHM = "AWS4-HMAC-SHA256"
EMPTY_PAYLOAD_HASH = hashlib.sha256(b"").hexdigest()


@dataclass(frozen=True)
class SignedRequestSpec:
    """Description of one request to sign.

    ``canonical_path`` must already be AWS URI-encoded. ``payload_hash``
    overrides hashing ``payload`` (e.g. ``UNSIGNED-PAYLOAD`` for bodies that
    are streamed without being buffered).
    """
    method: str
    canonical_path: str
    canonical_query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: bytes = b""
    payload_hash: Optional[str] = None


@dataclass(frozen=True)
class SigningResult:
    """Signed header set plus the intermediate values, for diagnostics."""
    headers: dict[str, str]
    authorization: str
    amz_date: str
    credential_scope: str
    signed_headers: str
    signature: str
    canonical_request: str
    string_to_sign: str


class AuthorizationComponents(NamedTuple):
    """Parsed AWS Signature V4 Authorization header"""
    access_key: str
    date: str
    region: str
    service: str
    signed_headers: list
    signature: str

    @property
    def credential_scope(self) -> str:
        return f"{self.date}/{self.region}/{self.service}/aws4_request"


def _hmac(key: bytes, msg: str) -> bytes:
    """HMAC-SHA256 signing helper"""
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def hash_payload(payload: bytes) -> str:
    """Calculate SHA256 hash of the payload"""
    return hashlib.sha256(payload).hexdigest()


def get_signature_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    """
    Derive the signing key for AWS Signature Version 4.

    kSecret -> kDate -> kRegion -> kService -> kSigning
    """
    k_date = _hmac(("AWS4" + secret_key).encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def format_amz_date(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def canonicalize_headers(headers: Mapping[str, str]) -> tuple[str, str]:
    """
    Build the canonical header block and the signed-headers list.

    - Lowercase header names, sort them
    - Trim values and collapse inner runs of spaces
    """
    normalized = {}
    for name, value in headers.items():
        normalized[name.strip().lower()] = " ".join(str(value).split())
    names = sorted(normalized)
    canonical = "".join(f"{name}:{normalized[name]}\n" for name in names)
    return canonical, ";".join(names)


def create_canonical_request(
    method: str,
    canonical_path: str,
    canonical_query: str,
    canonical_headers: str,
    signed_headers: str,
    payload_hash: str,
) -> str:
    """
    Format:
    HTTPMethod\\n
    CanonicalURI\\n
    CanonicalQueryString\\n
    CanonicalHeaders\\n
    SignedHeaders\\n
    HashedPayload
    """
    return "\n".join([
        method.upper(),
        canonical_path,
        canonical_query,
        canonical_headers,
        signed_headers,
        payload_hash,
    ])


def create_string_to_sign(canonical_request: str, amz_date: str, credential_scope: str) -> str:
    hashed_canonical = hashlib.sha256(canonical_request.encode("utf-8")).hexdigest()
    return "\n".join([ALGORITHM, amz_date, credential_scope, hashed_canonical])


def sign_request(
    spec: SignedRequestSpec,
    access_key: str,
    secret_key: str,
    region: str,
    service: str = "s3",
    now: Optional[datetime] = None,
) -> SigningResult:
    """Sign ``spec`` and return the full header set to send.

    Header names in the result are lowercase. ``x-amz-date``,
    ``x-amz-content-sha256`` and ``authorization`` are injected.
    """
    amz_date = format_amz_date(now or datetime.now(timezone.utc))
    date_stamp = amz_date[:8]
    payload_hash = spec.payload_hash or hash_payload(spec.payload)

    headers = {name.strip().lower(): value for name, value in spec.headers.items()}
    headers["x-amz-date"] = amz_date
    headers["x-amz-content-sha256"] = payload_hash

    canonical_headers, signed_headers = canonicalize_headers(headers)
    canonical_request = create_canonical_request(
        spec.method,
        spec.canonical_path,
        spec.canonical_query,
        canonical_headers,
        signed_headers,
        payload_hash,
    )

    credential_scope = f"{date_stamp}/{region}/{service}/aws4_request"
    string_to_sign = create_string_to_sign(canonical_request, amz_date, credential_scope)
    signing_key = get_signature_key(secret_key, date_stamp, region, service)
    signature = hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()

    authorization = (
        f"{ALGORITHM} Credential={access_key}/{credential_scope}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    headers["authorization"] = authorization

    return SigningResult(
        headers=headers,
        authorization=authorization,
        amz_date=amz_date,
        credential_scope=credential_scope,
        signed_headers=signed_headers,
        signature=signature,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
    )


def sign(
    method: str,
    canonical_path: str,
    canonical_query: str,
    headers: Mapping[str, str],
    payload: bytes,
    access_key: str,
    secret_key: str,
    region: str,
    service: str = "s3",
    now: Optional[datetime] = None,
) -> dict[str, str]:
    """Header-map form of :func:`sign_request`."""
    spec = SignedRequestSpec(
        method=method,
        canonical_path=canonical_path,
        canonical_query=canonical_query,
        headers=headers,
        payload=payload,
    )
    return sign_request(spec, access_key, secret_key, region, service, now=now).headers


def parse_authorization(auth_header: str) -> Optional[AuthorizationComponents]:
    """
    Parse AWS Signature V4 Authorization header.

    Format: AWS4-HMAC-SHA256 Credential=ACCESS_KEY/DATE/REGION/SERVICE/aws4_request,
            SignedHeaders=host;x-amz-content-sha256;x-amz-date,
            Signature=SIGNATURE
    """
    if not auth_header or not auth_header.startswith(ALGORITHM + " "):
        return None

    components = {}
    for part in auth_header[len(ALGORITHM) + 1:].split(","):
        if "=" in part:
            key, value = part.strip().split("=", 1)
            components[key.strip()] = value.strip()

    cred_parts = components.get("Credential", "").split("/")
    if len(cred_parts) != 5 or cred_parts[4] != "aws4_request":
        return None
    access_key, date, region, service, _ = cred_parts

    return AuthorizationComponents(
        access_key=access_key,
        date=date,
        region=region,
        service=service,
        signed_headers=components.get("SignedHeaders", "").split(";"),
        signature=components.get("Signature", ""),
    )
