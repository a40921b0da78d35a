"""Hand-authored citations for runtimes, IDEs and umbrella package groups."""

from pkgcite.citations.models import Author, RawCitationEntry

# ── Runtimes ─────────────────────────────────────────────────────────

KNOWN_RUNTIMES: dict[str, RawCitationEntry] = {
    "Python": RawCitationEntry(
        entry_type="book",
        title="Python 3 Reference Manual",
        authors=[
            Author(family="Van Rossum", given="Guido"),
            Author(family="Drake", given="Fred L."),
        ],
        year="2009",
        fields={"publisher": "CreateSpace", "address": "Scotts Valley, CA"},
    ),
    "R": RawCitationEntry(
        entry_type="manual",
        title="R: A Language and Environment for Statistical Computing",
        authors=[Author(name="R Core Team")],
        year="2024",
        fields={
            "organization": "R Foundation for Statistical Computing",
            "address": "Vienna, Austria",
            "url": "https://www.R-project.org/",
        },
    ),
}

# ── IDEs ─────────────────────────────────────────────────────────────

KNOWN_IDES: dict[str, RawCitationEntry] = {
    "JupyterLab": RawCitationEntry(
        entry_type="inproceedings",
        title="Jupyter Notebooks - a publishing format for reproducible computational workflows",
        authors=[
            Author(family="Kluyver", given="Thomas"),
            Author(family="Ragan-Kelley", given="Benjamin"),
            Author(family="Pérez", given="Fernando"),
            Author(family="Granger", given="Brian"),
            Author(family="Bussonnier", given="Matthias"),
            Author(family="Frederic", given="Jonathan"),
            Author(family="Kelley", given="Kyle"),
            Author(family="Hamrick", given="Jessica"),
            Author(family="Grout", given="Jason"),
            Author(family="Corlay", given="Sylvain"),
            Author(family="Ivanov", given="Paul"),
            Author(family="Avila", given="Damián"),
            Author(family="Abdalla", given="Safia"),
            Author(family="Willing", given="Carol"),
        ],
        year="2016",
        fields={
            "booktitle": "Positioning and Power in Academic Publishing: Players, Agents and Agendas",
            "publisher": "IOS Press",
            "pages": "87--90",
            "doi": "10.3233/978-1-61499-649-1-87",
        },
    ),
    "RStudio": RawCitationEntry(
        entry_type="manual",
        title="RStudio: Integrated Development Environment for R",
        authors=[Author(name="Posit team")],
        year="2024",
        fields={
            "organization": "Posit Software, PBC",
            "address": "Boston, MA",
            "url": "http://www.posit.co/",
        },
    ),
}

# ── Groups ───────────────────────────────────────────────────────────

TIDYVERSE_MEMBERS = (
    "broom", "conflicted", "cli", "dbplyr", "dplyr", "dtplyr", "forcats",
    "ggplot2", "googledrive", "googlesheets4", "haven", "hms", "httr",
    "jsonlite", "lubridate", "magrittr", "modelr", "pillar", "purrr", "ragg",
    "readr", "readxl", "reprex", "rlang", "rstudioapi", "rvest", "stringr",
    "tibble", "tidyr", "xml2",
)

_TIDYVERSE_AUTHORS = [
    ("Wickham", "Hadley"), ("Averick", "Mara"), ("Bryan", "Jennifer"),
    ("Chang", "Winston"), ("McGowan", "Lucy D'Agostino"), ("François", "Romain"),
    ("Grolemund", "Garrett"), ("Hayes", "Alex"), ("Henry", "Lionel"),
    ("Hester", "Jim"), ("Kuhn", "Max"), ("Pedersen", "Thomas Lin"),
    ("Miller", "Evan"), ("Bache", "Stephan Milton"), ("Müller", "Kirill"),
    ("Ooms", "Jeroen"), ("Robinson", "David"), ("Seidel", "Dana Paige"),
    ("Spinu", "Vitalie"), ("Takahashi", "Kohske"), ("Vaughan", "Davis"),
    ("Wilke", "Claus"), ("Woo", "Kara"), ("Yutani", "Hiroaki"),
]

KNOWN_GROUPS: dict[str, tuple[tuple[str, ...], RawCitationEntry]] = {
    "tidyverse": (
        TIDYVERSE_MEMBERS,
        RawCitationEntry(
            entry_type="article",
            title="Welcome to the tidyverse",
            authors=[Author(family=f, given=g) for f, g in _TIDYVERSE_AUTHORS],
            year="2019",
            fields={
                "journal": "Journal of Open Source Software",
                "volume": "4",
                "number": "43",
                "pages": "1686",
                "doi": "10.21105/joss.01686",
            },
        ),
    ),
}
