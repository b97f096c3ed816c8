import pytest

SAMPLE_RESUME = """Jane Doe
jane.doe@example.com | (555) 123-4567 | Austin, TX 78701
SUMMARY
Experienced software engineer with 8 years of experience building reliable backend services and data platforms.
EXPERIENCE
Senior Engineer at Acme Corp
Jan 2020 - Present
- Led a team of five engineers
- Reduced deployment time by 40 percent
Software Engineer at Globex
Jun 2016 - Dec 2019
- Maintained billing integrations for enterprise customers
EDUCATION
Bachelor of Science in Computer Science, Example University, 2016
SKILLS
Python, PostgreSQL, Docker, Kubernetes
"""


@pytest.fixture
def sample_resume() -> str:
    return SAMPLE_RESUME
