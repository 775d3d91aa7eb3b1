TEXT_PRIMARY = "#E6EDF3"
TEXT_MUTED = "#9AA6B2"


BG = "#0F1115"
SURFACE = "#151A22"
SURFACE_ALT = "#11151B"
SURFACE_ELEV = "#171D26"
BORDER = "#2A3342"

ACCENT = "#10A37F"
ACCENT_SOFT = "#0D2F28"
SUCCESS = "#22C55E"
WARNING = "#F59E0B"
