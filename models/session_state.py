"""
Session states and boolean toggles of a pomodoro session.

Per-state display data lives in lookup tables keyed by the enum value.
"""
from enum import Enum
from typing import Dict, FrozenSet, Optional


class SessionState(Enum):
    """States of a pomodoro session"""
    WORK = "work"
    BREAK = "break"
    LONG_BREAK = "long_break"
    NOT_STARTED = "not_started"
    PAUSED = "paused"
    FINISHED = "finished"


class BooleanSetting(Enum):
    """Settings which can either be on or off"""
    PINGS = "pings"
    AUTO = "auto"
    DELETE = "delete"
    IMAGES = "images"
    DATE = "date"


# Active states are the standard pomodoro states of work/break/long break
ACTIVE_STATES: FrozenSet[SessionState] = frozenset({
    SessionState.WORK,
    SessionState.BREAK,
    SessionState.LONG_BREAK,
})

# Message title when this is the state
STATE_TITLES: Dict[SessionState, str] = {
    SessionState.WORK: "WORKING",
    SessionState.BREAK: "BREAK",
    SessionState.LONG_BREAK: "LONG BREAK",
    SessionState.NOT_STARTED: "NOT STARTED",
    SessionState.PAUSED: "PAUSED",
    SessionState.FINISHED: "FINISHED",
}

# E.g. "It's long break time!"
STATE_DISPLAY_NAMES: Dict[SessionState, str] = {
    SessionState.WORK: "work",
    SessionState.BREAK: "break",
    SessionState.LONG_BREAK: "long break",
    SessionState.NOT_STARTED: "",
    SessionState.PAUSED: "paused",
    SessionState.FINISHED: "finished",
}

STATE_COLOURS: Dict[SessionState, Optional[str]] = {
    SessionState.WORK: "#0000FF",
    SessionState.BREAK: "#00FFFF",
    SessionState.LONG_BREAK: "#00FFFF",
    SessionState.NOT_STARTED: "#FFC800",
    SessionState.PAUSED: "#FFC800",
    SessionState.FINISHED: None,
}

STATE_IMAGES: Dict[SessionState, str] = {
    SessionState.WORK: "https://img.jakpost.net/c/2020/03/01/2020_03_01_87874_1583031914.jpg",
    SessionState.BREAK: (
        "https://img.webmd.com/dtmcms/live/webmd/consumer_assets/site_images/article_thumbnails/"
        "slideshows/stretches_to_help_you_get_loose_slideshow/"
        "1800x1200_stretches_to_help_you_get_loose_slideshow.jpg"
    ),
    SessionState.LONG_BREAK: "https://miro.medium.com/max/10000/1*BbmQbf-ZHVIgBaoUVShq6g.jpeg",
    SessionState.NOT_STARTED: (
        "https://wp-media.labs.com/wp-content/uploads/2019/01/01140607/"
        "How-to-De-Clutter-Your-Workspace1.jpg"
    ),
    SessionState.PAUSED: (
        "https://encrypted-tbn0.gstatic.com/images?q=tbn:ANd9GcT-zcKdGFYy2oPkxzqj0lXhGYDyLofR-c083Q&usqp=CAU"
    ),
    SessionState.FINISHED: (
        "https://static01.nyt.com/images/2015/11/03/health/well_lyingdown/"
        "well_lyingdown-tmagArticle.jpg"
    ),
}

# Bracketed so users know what to type to toggle the setting
BOOLEAN_SETTING_LABELS: Dict[BooleanSetting, str] = {
    BooleanSetting.PINGS: "(Pings)",
    BooleanSetting.AUTO: "(Auto) Continue",
    BooleanSetting.DELETE: "(Delete) old messages",
    BooleanSetting.IMAGES: "(Images)",
    BooleanSetting.DATE: "Show full (date)",
}


def is_active(state: SessionState) -> bool:
    return state in ACTIVE_STATES
