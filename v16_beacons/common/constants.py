"""Application constants."""

FEED_URL = "https://nap.dgt.es/datex2/v3/dgt/SituationPublication/datex2_v36.xml"
USER_AGENT = "v16-beacons/1.3 (+map; NAP DGT DATEX2)"
ACCEPT_XML = "application/xml,text/xml;q=0.9,*/*;q=0.8"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

CACHE_TTL_SECONDS = 30
FETCH_TIMEOUT_SECONDS = 12.0
MAX_RECORDS = 5000

SPAIN_BBOX = {
    "min_lat": 27.0,
    "max_lat": 44.8,
    "min_lon": -19.5,
    "max_lon": 5.5,
}
HAZARD_KEYWORDS = (
    "vehicle",
    "stationary",
    "obstruction",
    "breakdown",
    "vehicul",
    "aver",
    "deten",
    "inmov",
    "arcen",
    "obst",
    "carril",
    "parad",
    "averiado",
)

COMMANDS = ("fetch", "parse", "poll")
EXIT_SUCCESS = 0
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "level",
    "run_id",
    "stage",
    "source",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "cache_age_s",
    "error_code",
    "message",
)
