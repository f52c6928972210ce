from datetime import date

from models.profile import DegreeLevel
from services.entity_extractor import (
    classify_degree,
    extract_certifications,
    extract_contact,
    extract_education,
    extract_experience,
    extract_industries,
    extract_job_titles,
    extract_languages,
    extract_projects,
    extract_summary,
    find_date_range,
    parse_date,
    split_segments,
)
from services.section_parser import parse_sections, section_blocks


# --- Contact ---


def test_extract_contact(sample_document):
    contact = extract_contact(sample_document)
    assert contact.full_name == "Jane Smith"
    assert contact.email == "jane@example.com"
    assert contact.phone == "(555) 123-4567"
    assert contact.linkedin == "linkedin.com/in/janesmith"
    assert contact.github == "github.com/janesmith"


def test_extract_contact_missing_fields():
    contact = extract_contact("")
    assert contact.full_name is None
    assert contact.email is None
    assert contact.phone is None


def test_extract_contact_skips_email_as_name():
    contact = extract_contact("jane@example.com\nJane Smith")
    assert contact.full_name is None
    assert contact.email == "jane@example.com"


# --- Dates ---


def test_parse_date_forms():
    assert parse_date("Mar 2019") == date(2019, 3, 1)
    assert parse_date("September 2020") == date(2020, 9, 1)
    assert parse_date("2018") == date(2018, 1, 1)
    assert parse_date("sometime") is None


def test_find_date_range_present():
    start, end, is_current, remainder = find_date_range("Engineer | Acme Inc. | Jan 2020 - Present")
    assert start == date(2020, 1, 1)
    assert end is None
    assert is_current is True
    assert remainder == "Engineer | Acme Inc."


def test_find_date_range_years():
    start, end, is_current, _ = find_date_range("2016 to 2019")
    assert (start, end, is_current) == (date(2016, 1, 1), date(2019, 1, 1), False)


def test_find_date_range_none():
    assert find_date_range("No dates here") is None


def test_split_segments_rejoins_company_suffix():
    assert split_segments("Developer, Acme, Inc.") == ["Developer", "Acme, Inc."]
    assert split_segments("Analyst at Initech LLC") == ["Analyst", "Initech LLC"]


# --- Education ---


def test_classify_degree_levels():
    assert classify_degree("Ph.D. in Physics") == DegreeLevel.doctorate
    assert classify_degree("Master of Science in Data Science") == DegreeLevel.master
    assert classify_degree("MBA") == DegreeLevel.master
    assert classify_degree("Bachelor of Arts") == DegreeLevel.bachelor
    assert classify_degree("BS Computer Science") == DegreeLevel.bachelor
    assert classify_degree("Associate of Applied Science") == DegreeLevel.associate
    assert classify_degree("High School Diploma") == DegreeLevel.high_school
    assert classify_degree("Managed a team") is None


def test_classify_degree_ignores_lowercase_words():
    assert classify_degree("worked as a lead") is None
    assert classify_degree("Cambridge, MA") is None


def test_extract_education(sample_document):
    sections = section_blocks(sample_document.split("\n"))
    entries = extract_education(sections["education"])
    assert len(entries) == 1
    entry = entries[0]
    assert entry.degree_level == DegreeLevel.bachelor
    assert entry.field == "Computer Science"
    assert entry.institution == "State University"
    assert (entry.start_year, entry.end_year) == (2012, 2016)


def test_extract_education_multiple_records():
    lines = [
        "Master of Science in Machine Learning",
        "Carnegie Mellon University, 2018 - 2020",
        "Bachelor of Science in Mathematics",
        "Ohio State University",
        "2014 - 2018",
    ]
    entries = extract_education(lines)
    assert [e.degree_level for e in entries] == [DegreeLevel.master, DegreeLevel.bachelor]
    assert entries[0].field == "Machine Learning"
    assert entries[0].institution == "Carnegie Mellon University"
    assert entries[1].institution == "Ohio State University"
    assert entries[1].start_year == 2014


def test_extract_education_empty():
    assert extract_education([]) == []
    assert extract_education(["Graduated with honors"]) == []


# --- Experience ---


def test_extract_experience(sample_document):
    sections = section_blocks(sample_document.split("\n"))
    entries = extract_experience(sections["experience"])
    assert len(entries) == 2

    first, second = entries
    assert first.title == "Senior Software Engineer"
    assert first.employer == "Acme Inc."
    assert first.start == date(2020, 1, 1)
    assert first.is_current is True
    assert first.end is None
    assert first.description == "Built REST APIs with Python and FastAPI"

    assert second.title == "Software Engineer"
    assert second.employer == "Beta LLC"
    assert (second.start, second.end) == (date(2016, 1, 1), date(2019, 1, 1))


def test_extract_experience_split_lines():
    lines = [
        "Data Analyst",
        "Initech Corp",
        "Mar 2017 - Jun 2019",
        "Produced weekly sales reports",
        "Globex Corporation",
        "Business Analyst",
        "2019 - Present",
    ]
    entries = extract_experience(lines)
    assert [(e.employer, e.title) for e in entries] == [
        ("Initech Corp", "Data Analyst"),
        ("Globex Corporation", "Business Analyst"),
    ]
    assert entries[0].start == date(2017, 3, 1)
    assert entries[0].end == date(2019, 6, 1)
    assert entries[0].description == "Produced weekly sales reports"
    assert entries[1].is_current is True


def test_extract_experience_ignores_prose_without_anchors():
    assert extract_experience(["Enjoyed hiking and travel"]) == []


# --- Summary, projects, certifications, languages ---


def test_extract_summary_truncates():
    assert extract_summary(["Short summary."]) == "Short summary."
    long_text = extract_summary(["word " * 200])
    assert len(long_text) == 503
    assert long_text.endswith("...")


def test_extract_projects(sample_document):
    projects = extract_projects(parse_sections(sample_document)["projects"])
    assert len(projects) == 1
    assert projects[0].name == "Resume Matcher"
    assert projects[0].description == "Built a matching engine in Python"


def test_extract_certifications(sample_document):
    certs = extract_certifications(parse_sections(sample_document)["certifications"])
    assert len(certs) == 1
    assert certs[0].name == "AWS Certified Solutions Architect"
    assert certs[0].issuing_organization == "Amazon Web Services"


def test_extract_languages(sample_document):
    languages = extract_languages(parse_sections(sample_document)["languages"])
    assert [(lang.name, lang.proficiency) for lang in languages] == [
        ("english", "native"),
        ("spanish", "intermediate"),
    ]


# --- Job titles and industries ---


def test_extract_job_titles(sample_document):
    titles = extract_job_titles(sample_document)
    assert [t.title for t in titles] == ["backend", "software engineer", "architect"]
    assert all(t.confidence == 0.8 for t in titles)


def test_two_word_title_not_split():
    titles = extract_job_titles("Product Manager, previously Project Manager and UI/UX designer")
    assert [t.title for t in titles] == ["product manager", "project manager", "ui/ux", "designer"]


def test_job_titles_capped():
    text = "developer programmer analyst consultant designer director architect"
    assert len(extract_job_titles(text)) == 5


def test_job_titles_empty():
    assert extract_job_titles("") == []
    assert extract_job_titles("Gardening and cooking") == []


def test_extract_industries(sample_document):
    industries = extract_industries(sample_document)
    assert [(i.industry, i.confidence) for i in industries] == [
        ("education", 0.5),
        ("technology", 0.25),
    ]


def test_industries_capped_at_three():
    text = "software banking finance medical health hospital teaching"
    industries = extract_industries(text)
    assert [i.industry for i in industries] == ["healthcare", "finance", "technology"]
    assert industries[0].confidence == 0.75


def test_industry_keywords_match_whole_words():
    assert extract_industries("Healthy habits and itinerary planning") == []
