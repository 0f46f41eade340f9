from __future__ import annotations

DEGREE_TYPES: list[tuple[str, str]] = [
    ("10th", "10th Standard / SSLC"),
    ("12th", "12th Standard / PUC / HSC"),
    ("diploma", "Diploma"),
    ("bachelor", "Bachelor's Degree"),
    ("master", "Master's Degree"),
    ("phd", "PhD / Doctorate"),
]

DEGREE_NAMES: dict[str, list[str]] = {
    "10th": ["SSLC", "CBSE", "ICSE", "State Board"],
    "12th": [
        "PUC Science",
        "PUC Commerce",
        "PUC Arts",
        "CBSE Science",
        "CBSE Commerce",
        "CBSE Arts",
        "ISC",
    ],
    "diploma": [
        "Diploma in Computer Science",
        "Diploma in Mechanical Engineering",
        "Diploma in Electronics",
        "Diploma in Civil Engineering",
        "Other Diploma",
    ],
    "bachelor": ["B.Tech", "B.E.", "BCA", "B.Sc", "B.Com", "BBA", "BA", "B.Arch", "Other Bachelor"],
    "master": ["M.Tech", "MCA", "MBA", "M.Sc", "M.Com", "MA", "M.E.", "Other Master"],
    "phd": [
        "PhD in Computer Science",
        "PhD in Engineering",
        "PhD in Management",
        "PhD in Science",
        "Other PhD",
    ],
}

COUNTRY_CODES: list[tuple[str, str]] = [
    ("+91", "India"),
    ("+1", "USA"),
    ("+44", "UK"),
    ("+61", "Australia"),
    ("+81", "Japan"),
    ("+49", "Germany"),
    ("+33", "France"),
    ("+86", "China"),
]

ROLE_OPTIONS = [
    "Software Engineer",
    "Data Scientist",
    "Product Manager",
    "UX/UI Designer",
    "DevOps Engineer",
    "Cybersecurity",
    "Machine Learning",
    "Blockchain Dev",
    "Others",
]

WORK_PREFERENCES: list[tuple[str, str]] = [
    ("in-office", "In-office"),
    ("work-from-home", "Work from home"),
    ("hybrid", "Hybrid"),
]

OTHER_PREFERENCES: list[tuple[str, str]] = [
    ("startups", "Willing to work in startups"),
    ("relocation", "Open to relocation"),
]

EMPLOYMENT_TYPES: list[tuple[str, str]] = [
    ("full-time", "Full-time"),
    ("part-time", "Part-time"),
    ("internship", "Internship"),
    ("contract", "Contract"),
    ("freelance", "Freelance"),
]

API_KEY_FIELDS: list[tuple[str, str, bool]] = [
    ("gemini_ai_key", "Gemini AI Key", True),
    ("linkedin_api_key", "LinkedIn API Key", False),
    ("naukri_api_key", "Naukri API Key", False),
    ("indeed_api_key", "Indeed API Key", False),
    ("gmail_api_key", "Gmail API Key", False),
]

CERTIFICATE_TYPES = [
    "10th Mark Sheet",
    "12th Mark Sheet",
    "Undergraduate Degree",
    "Postgraduate Degree",
    "Diploma Certificate",
    "Online Course Certificate",
    "Professional Certificate",
    "Other",
]


def degree_type_label(value: str) -> str:
    return dict(DEGREE_TYPES).get(value, value)
