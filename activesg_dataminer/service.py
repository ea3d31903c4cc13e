import base64
import datetime
import logging
import time
from typing import List

import requests
from bs4 import BeautifulSoup
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding

from .errors import AuthError, QueryError
from .models import AppConfig, Credentials, Gym, LoginForm, RawGymPayload, Session

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:95.0) Gecko/20100101 Firefox/95.0"
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"


def encrypt_password(public_key_pem: str, password: str) -> str:
    """RSA-encrypt the password with PKCS#1 v1.5 padding, as the portal's login form does."""
    try:
        key = serialization.load_pem_public_key(public_key_pem.encode())
    except (ValueError, TypeError) as e:
        raise AuthError("Failed to parse the login page's RSA public key") from e
    try:
        encrypted = key.encrypt(password.encode(), padding.PKCS1v15())
    except (ValueError, AttributeError) as e:
        raise AuthError("Failed to encrypt password with the login page's RSA public key") from e
    return base64.b64encode(encrypted).decode()


def _input_value(soup: BeautifulSoup, name: str) -> str:
    field = soup.find("input", attrs={"name": name})
    value = field.get("value") if field else None
    if not value:
        raise AuthError(f"Login page is missing the '{name}' field")
    return value


class SlotDataService:
    def __init__(self, config: AppConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.login_url = f"{self.base_url}/auth"
        self.signin_url = f"{self.base_url}/auth/signin"
        self.profile_url = f"{self.base_url}/profile"

        self.headers_common = {
            "User-Agent": USER_AGENT,
            "Accept": ACCEPT,
        }

    def login(self, credentials: Credentials) -> Session:
        http = requests.Session()
        http.headers.update(self.headers_common)

        try:
            response = http.get(self.login_url, timeout=self.config.timeout)
            response.raise_for_status()
            logging.info("GET login page successful")

            soup = BeautifulSoup(response.text, "html.parser")
            form = LoginForm(
                email=credentials.username,
                ecpassword=encrypt_password(
                    _input_value(soup, "rsapublickey"),
                    credentials.password.get_secret_value(),
                ),
                csrf=_input_value(soup, "_csrf"),
            )

            response = http.post(
                self.signin_url,
                data=form.model_dump(by_alias=True),
                timeout=self.config.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            http.close()
            raise AuthError(f"Network error during login: {type(e).__name__}") from None
        except AuthError:
            http.close()
            raise

        if response.url.rstrip("/") != self.profile_url:
            http.close()
            logging.debug(f"Login landed on {response.url}")
            raise AuthError("Invalid login credentials/session expired")

        logging.info("Logged in successfully")
        return Session(http=http, referer=response.url)

    def query_days(self, today: datetime.date = None) -> List[datetime.date]:
        today = today or datetime.datetime.now(datetime.timezone.utc).date()
        return sorted({today + datetime.timedelta(days=offset) for offset in self.config.day_offsets})

    def slots_url(self, gym: Gym, day: datetime.date) -> str:
        midnight = datetime.datetime.combine(day, datetime.time(0, 0), tzinfo=datetime.timezone.utc)
        return (
            f"{self.base_url}/facilities/view/activity/{self.config.facility_type}"
            f"/venue/{gym.value}?time_from={int(midnight.timestamp())}"
        )

    def fetch_slots(self, session: Session, gym: Gym, day: datetime.date) -> RawGymPayload:
        """
        Fetch one gym's booking page for a day, e.g.
        https://members.myactivesg.com/facilities/view/activity/1031/venue/154?time_from=1616256000
        """
        url = self.slots_url(gym, day)
        try:
            response = session.http.get(url, headers={"Referer": session.referer}, timeout=self.config.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise QueryError(f"{gym.name} {day.isoformat()}: {e}") from e

        if response.url.startswith(self.login_url):
            raise QueryError(f"{gym.name} {day.isoformat()}: session expired")

        logging.debug(f"{gym.name} {day.isoformat()}: received {len(response.text)} bytes")
        return RawGymPayload(gym=gym, date=day, html=response.text)

    def fetch_all(self, session: Session, today: datetime.date = None) -> List[RawGymPayload]:
        """
        Query every configured gym for every query day. Per-gym failures are
        collected and raised together once all gyms have been tried.
        """
        days = self.query_days(today)
        payloads = []
        failures = []
        first = True

        for gym in self.config.gyms:
            for day in days:
                if not first and self.config.request_delay:
                    time.sleep(self.config.request_delay)
                first = False

                try:
                    payloads.append(self.fetch_slots(session, gym, day))
                except QueryError as e:
                    logging.error(f"Query failed: {e}")
                    failures.append(str(e))
                    break
            else:
                logging.info(f"Fetched {len(days)} day(s) for {gym.name}")

        if failures:
            raise QueryError(f"{len(failures)} gym(s) failed: " + "; ".join(failures))
        return payloads
