"""
Team name canonicalization for the spreads league

Games, results and picks carry team names as free text. Every comparison goes
through canonicalize(), which maps any known spelling of a franchise (full
name, city, mascot or abbreviation) to one uppercase "CITY MASCOT" string.
"""

import re

# (city, mascot, extra aliases). Cities shared by two franchises are not
# usable on their own and are marked with city_alias=False below.
_FRANCHISES = (
    ("ARIZONA", "CARDINALS", ("ARI", "ARZ", "CARDS")),
    ("ATLANTA", "FALCONS", ("ATL",)),
    ("BALTIMORE", "RAVENS", ("BAL", "BLT")),
    ("BUFFALO", "BILLS", ("BUF",)),
    ("CAROLINA", "PANTHERS", ("CAR",)),
    ("CHICAGO", "BEARS", ("CHI",)),
    ("CINCINNATI", "BENGALS", ("CIN",)),
    ("CLEVELAND", "BROWNS", ("CLE", "CLV")),
    ("DALLAS", "COWBOYS", ("DAL",)),
    ("DENVER", "BRONCOS", ("DEN",)),
    ("DETROIT", "LIONS", ("DET",)),
    ("GREEN BAY", "PACKERS", ("GB", "GNB", "PACK")),
    ("HOUSTON", "TEXANS", ("HOU", "HST")),
    ("INDIANAPOLIS", "COLTS", ("IND",)),
    ("JACKSONVILLE", "JAGUARS", ("JAX", "JAC", "JAGS")),
    ("KANSAS CITY", "CHIEFS", ("KC", "KAN", "KCC")),
    ("LAS VEGAS", "RAIDERS", ("LV", "LVR", "OAK", "OAKLAND RAIDERS")),
    ("LOS ANGELES", "CHARGERS", ("LAC", "LA CHARGERS", "SD", "SAN DIEGO CHARGERS")),
    ("LOS ANGELES", "RAMS", ("LAR", "LA RAMS", "STL", "ST LOUIS RAMS")),
    ("MIAMI", "DOLPHINS", ("MIA", "PHINS")),
    ("MINNESOTA", "VIKINGS", ("MIN", "VIKES")),
    ("NEW ENGLAND", "PATRIOTS", ("NE", "NWE", "PATS")),
    ("NEW ORLEANS", "SAINTS", ("NO", "NOR", "NOS")),
    ("NEW YORK", "GIANTS", ("NYG", "NY GIANTS")),
    ("NEW YORK", "JETS", ("NYJ", "NY JETS")),
    ("PHILADELPHIA", "EAGLES", ("PHI", "PHL", "PHILLY")),
    ("PITTSBURGH", "STEELERS", ("PIT",)),
    ("SAN FRANCISCO", "49ERS", ("SF", "SFO", "NINERS", "SF 49ERS")),
    ("SEATTLE", "SEAHAWKS", ("SEA",)),
    ("TAMPA BAY", "BUCCANEERS", ("TB", "TAM", "TBB", "BUCS")),
    ("TENNESSEE", "TITANS", ("TEN",)),
    ("WASHINGTON", "COMMANDERS", ("WAS", "WSH", "WASHINGTON FOOTBALL TEAM")),
)

_SHARED_CITIES = {"LOS ANGELES", "NEW YORK"}

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")


def clean_team_text(raw):
    """Strip punctuation and NBSPs, collapse whitespace and uppercase"""
    if raw is None:
        return ""
    text = str(raw).replace("\u00a0", " ")
    text = _PUNCTUATION.sub("", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip().upper()


def _alias_key(text):
    return clean_team_text(text).replace(" ", "")


def _build_alias_table():
    table = {}
    for city, mascot, extras in _FRANCHISES:
        canonical = f"{city} {mascot}"
        aliases = [canonical, mascot, *extras]
        if city not in _SHARED_CITIES:
            aliases.append(city)

        for alias in aliases:
            key = _alias_key(alias)
            existing = table.get(key)
            if existing is not None and existing != canonical:
                raise ValueError(f"Alias {alias!r} maps to {existing} and {canonical}")
            table[key] = canonical
    return table


TEAM_ALIASES = _build_alias_table()
CANONICAL_TEAMS = tuple(sorted(set(TEAM_ALIASES.values())))


def canonicalize(raw):
    """
    Map any spelling of a team to its canonical uppercase name.

    Unknown names fall back to the cleaned text, so the function never raises
    and canonicalize(canonicalize(x)) == canonicalize(x).
    """
    cleaned = clean_team_text(raw)
    return TEAM_ALIASES.get(cleaned.replace(" ", ""), cleaned)


def is_known_team(raw):
    """True when the alias table recognises the name"""
    return _alias_key(raw) in TEAM_ALIASES
