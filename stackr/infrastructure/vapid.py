"""
VAPID key generation for the web push transport.

    python -m stackr.infrastructure.vapid >> .env
"""
import base64

from py_vapid import Vapid


def generate_vapid_keys() -> dict[str, str]:
    """
    Fresh key pair as settings values:
    VAPID_PUBLIC_KEY is the browser application server key (base64url of the
    uncompressed EC point), VAPID_PRIVATE_KEY the PEM that WebPushTransport reads.
    """
    vapid = Vapid()
    vapid.generate_keys()

    numbers = vapid.public_key.public_numbers()
    point = b"\x04" + numbers.x.to_bytes(32, "big") + numbers.y.to_bytes(32, "big")
    public_key = base64.urlsafe_b64encode(point).rstrip(b"=").decode()

    private_pem = vapid.private_pem()
    if isinstance(private_pem, bytes):
        private_pem = private_pem.decode()

    return {"VAPID_PUBLIC_KEY": public_key, "VAPID_PRIVATE_KEY": private_pem}


def as_env_lines(keys: dict[str, str]) -> list[str]:
    # newlines escaped so the PEM survives a single .env line
    return [f"{name}={value.strip()}".replace("\n", "\\n") for name, value in keys.items()]


if __name__ == "__main__":
    for line in as_env_lines(generate_vapid_keys()):
        print(line)
