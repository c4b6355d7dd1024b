"""Organization category and affiliation taxonomy for TUPConnect.

The category labels are the ones stored on organization records, so the
classifier output can be compared against them directly.
"""

CATEGORY_TAXONOMY = (
    "Academic/Research",
    "Technology/IT/Gaming",
    "Engineering/Built Env.",
    "Arts/Design/Media",
    "Leadership/Governance",
    "Service/Welfare/Outreach",
    "Entrepreneurship/Finance",
    "Industrial/Applied Skills",
    "Social Justice/Advocacy",
    "Culture/Religion",
)

NO_AFFILIATION = "NONE"

AFFILIATION_TAXONOMY = (
    "COS",
    "COE",
    "CIT",
    "CAFA",
    "CLA",
    "CIE",
    NO_AFFILIATION,
)

# Directory section titles, keyed by the affiliation stored on org records
AFFILIATION_TITLES = {
    "CAFA": "College of Architecture and Fine Arts",
    "CIE": "College of Industrial Education",
    "CIT": "College of Industrial Technology",
    "CLA": "College of Liberal Arts",
    "COE": "College of Engineering",
    "COS": "College of Science",
    "NON_COLLEGE": "Non-College Based",
    "RELIGIOUS": "Religious Organizations",
}

AFFILIATION_DESCRIPTIONS = {
    "COS": "College of Science (computer science, IT, math, chemistry, physics)",
    "COE": "College of Engineering (civil, electrical, electronics, mechanical engineering)",
    "CIT": "College of Industrial Technology (automotive, electrical, electronics, food technology)",
    "CAFA": "College of Architecture and Fine Arts (architecture, fine arts, graphics)",
    "CLA": "College of Liberal Arts (entrepreneurship, hospitality, business, languages)",
    "CIE": "College of Industrial Education (technical teacher education, home economics)",
    NO_AFFILIATION: "no college mentioned or implied",
}

# Hand-ordered, tried after whatever the provider reports as available
PREFERRED_MODELS = (
    "gemini-1.5-flash-latest",
    "gemini-1.5-flash-002",
    "gemini-1.5-flash-001",
    "gemini-1.5-flash",
    "gemini-1.5-pro-latest",
    "gemini-1.5-pro-002",
    "gemini-1.5-pro-001",
    "gemini-1.5-pro",
    "gemini-1.0-pro-latest",
    "gemini-1.0-pro-001",
    "gemini-1.0-pro",
    "gemini-pro-latest",
    "gemini-pro",
)
