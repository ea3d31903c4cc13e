import datetime
from enum import Enum
from typing import Iterator, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from .errors import UsageError


class Gym(Enum):
    """ActiveSG gym venues; the value is the portal's venue id."""

    AMK_CC = 1016
    FERNVALE_SQ = 1048
    TOA_PAYOH_CC = 1049
    HOKEY_VILLAGE_BOONLAY = 1037
    BISHAN = 137
    BUKIT_BATOK = 1040
    BUKIT_GOMBAK = 145
    CHOA_CHU_KANG = 154
    CLEMENTI = 160
    ENABLING_VILLAGE = 849
    HEARTBEAT_BEDOK = 896
    HOUGANG = 185
    JALAN_BESAR = 967
    JURONG_EAST = 196
    JURONG_LAKE = 1012
    JURONG_WEST = 200
    PASIR_RIS = 544
    SENGKANG = 239
    SENJA_CASHEW = 1089
    SILVER_CIRCLE = 886
    TAMPINES = 900
    TOA_PAYOH = 268
    WOODLANDS = 274
    YIO_CHU_KANG = 279
    YISHUN = 284

    @classmethod
    def from_name(cls, name: str) -> "Gym":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise UsageError(f"Invalid gym: {name}") from None


class Credentials(BaseModel):
    username: str
    password: SecretStr

    def __repr__(self) -> str:
        return "Credentials(username=**********, password=**********)"

    __str__ = __repr__


class LoginForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    ecpassword: str
    csrf: str = Field(alias="_csrf")


class Session(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    http: requests.Session
    referer: str


class RawGymPayload(BaseModel):
    gym: Gym
    date: datetime.date
    html: str


class SlotLabel(BaseModel):
    time_label: str
    avail_label: str


class SlotPage(BaseModel):
    gym: Gym
    date: datetime.date
    slots: List[SlotLabel] = []


class Timeslot(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: datetime.datetime
    avail: int = Field(ge=0)


class GymRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    gym: str
    datetime: datetime.datetime
    time: List[datetime.datetime] = []
    slots_avail: List[int] = []

    @model_validator(mode="after")
    def check_alignment(self) -> "GymRecord":
        if len(self.time) != len(self.slots_avail):
            raise ValueError(
                f"time has {len(self.time)} entries but slots_avail has {len(self.slots_avail)}"
            )
        for earlier, later in zip(self.time, self.time[1:]):
            if later <= earlier:
                raise ValueError(f"timeslots out of order: {later.isoformat()} after {earlier.isoformat()}")
        return self

    @property
    def slots(self) -> Iterator[Timeslot]:
        for time, avail in zip(self.time, self.slots_avail):
            yield Timeslot(time=time, avail=avail)


class AppConfig(BaseModel):
    base_url: str = "https://members.myactivesg.com"
    facility_type: int = 1031
    gyms: List[Gym] = list(Gym)
    day_offsets: List[int] = [0, 2, 3]
    request_delay: float = Field(default=1.0, ge=0)
    timeout: float = Field(default=10, gt=0)
    output_dir: Optional[str] = None
    log_level: str = "INFO"

    @field_validator("gyms", mode="before")
    @classmethod
    def gyms_by_name(cls, value):
        if not isinstance(value, list):
            return value
        gyms = []
        for item in value:
            if isinstance(item, str):
                try:
                    item = Gym.from_name(item)
                except UsageError as e:
                    raise ValueError(str(e)) from None
            gyms.append(item)
        return gyms
