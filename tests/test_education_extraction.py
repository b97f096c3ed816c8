from resume_ingest.core.education_parser import (
    extract_degree_from_text,
    extract_education,
    extract_field_of_study_from_degree_line,
    has_degree_keyword,
    is_institution_keyword,
)
from resume_ingest.core.schemas import Education


def test_single_line_entry(sample_resume):
    section = "Bachelor of Science in Computer Science, Example University, 2016"
    edu = extract_education(sample_resume, section)

    assert edu.degree == "Bachelor of Science"
    assert edu.field == "Computer Science"
    assert edu.school == "Example University"
    assert edu.grad_year == "2016"
    assert edu.grad_month == ""


def test_multi_line_entry_with_location_and_month():
    section = "Master of Science in Data Science\nState University, Columbus, OH\nMay 2019"
    edu = extract_education("", section)

    assert edu.degree == "Master of Science"
    assert edu.field == "Data Science"
    assert edu.school == "State University"
    assert edu.location == "Columbus, OH"
    assert (edu.grad_year, edu.grad_month) == ("2019", "May")


def test_full_text_used_when_section_blank():
    edu = extract_education("Jane Doe\nB.S. in Mathematics\nRiver College 2012")
    assert edu.degree == "B.S."
    assert edu.field == "Mathematics"
    assert edu.school == "River College"
    assert edu.grad_year == "2012"


def test_implausible_years_are_ignored():
    edu = extract_education("", "BA in History, Example College, 1975 - 1979")
    assert edu.degree == "BA"
    assert edu.field == "History"
    assert edu.grad_year == ""


def test_no_education_is_empty_record():
    assert extract_education("Jane Doe\nSenior Engineer at Acme Corp\n2019 - 2021") == Education()


def test_degree_keywords():
    assert has_degree_keyword("MS in Finance")
    assert has_degree_keyword("Ph.D. candidate")
    assert not has_degree_keyword("MS Office, Excel")
    assert not has_degree_keyword("Senior Engineer at Acme Corp")


def test_institution_keywords_need_word_boundaries():
    assert is_institution_keyword("Example University")
    assert not is_institution_keyword("Schoolhouse Rock")


def test_degree_and_field_helpers():
    assert extract_degree_from_text("M.S. in Engineering") == "M.S."
    assert extract_degree_from_text("Master of Business Administration") == "Master of Business Administration"
    assert extract_degree_from_text("Senior Engineer") is None
    assert extract_field_of_study_from_degree_line(
        "Master of Business Administration", "Master of Business Administration"
    ) is None
    assert extract_field_of_study_from_degree_line("Certificate for Data Analytics, 2020", "Certificate") == "Data Analytics"
