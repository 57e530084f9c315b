"""
Brand colors used for Slack attachment sidebars.
"""
from enum import Enum


class Colors(str, Enum):
    BLUE = "#4969F6"
    GREEN = "#48D597"
    YELLOW = "#F5CF65"
    RED = "#E86886"
    BLACK = "#0B1418"
    WHITE = "#FFFFFF"
