import datetime
from typing import List, Tuple
from unittest.mock import Mock

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from activesg_dataminer.models import AppConfig, Gym, RawGymPayload

BASE_URL = "https://members.myactivesg.com"
DAY = datetime.date(2024, 3, 21)
NOW = datetime.datetime(2024, 3, 21, 1, 30, tzinfo=datetime.timezone.utc)

EIGHT_SLOTS = [
    ("07:00 AM", 25), ("09:00 AM", 20), ("11:00 AM", 12), ("01:00 PM", 3),
    ("03:00 PM", 0), ("05:00 PM", 0), ("07:00 PM", 1), ("09:00 PM", 8),
]


def slot_page_html(slots: List[Tuple[str, int]]) -> str:
    grids = "".join(
        f'<div class="chkbox-grid"><label>{time}</label><label>{count} Left</label></div>'
        for time, count in slots
    )
    return f"<html><body><form id='formTimeslots'>{grids}</form></body></html>"


def login_page_html(public_pem: str, csrf: str = "csrf-token") -> str:
    return (
        "<html><body><form action='/auth/signin' method='post'>"
        f"<input type='hidden' name='_csrf' value='{csrf}'/>"
        f"<input type='hidden' name='rsapublickey' value='{public_pem}'/>"
        "<input name='email'/><input name='ecpassword'/>"
        "</form></body></html>"
    )


def fake_response(text: str = "", url: str = BASE_URL, status: int = 200) -> Mock:
    response = Mock()
    response.text = text
    response.url = url
    response.status_code = status
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error for url: {url}")
    else:
        response.raise_for_status.return_value = None
    return response


def fake_http(**kwargs) -> Mock:
    http = Mock(spec=requests.Session, **kwargs)
    http.headers = {}
    return http


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_pem(rsa_key):
    return rsa_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def config():
    return AppConfig(gyms=[Gym.AMK_CC, Gym.BISHAN], day_offsets=[0], request_delay=0)


@pytest.fixture
def amk_payload():
    return RawGymPayload(gym=Gym.AMK_CC, date=DAY, html=slot_page_html(EIGHT_SLOTS))


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATAMINER_CONFIG", raising=False)
    monkeypatch.delenv("DATAMINER_LOG_LEVEL", raising=False)
