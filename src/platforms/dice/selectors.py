"""Dice DOM selector constants with fallbacks.

Ordered by stability: data-cy attributes first, then tag/class fallbacks.
Each constant is a tuple so callers iterate until a match is found.
"""

# --- Search results page ---
CARD_SELECTORS: tuple[str, ...] = (
    'div[data-cy="card"]',
    "div.card-job",
)
CARD_TITLE_LINK_SELECTORS: tuple[str, ...] = (
    'a[data-cy="card-title-link"]',
    "a.card-title-link",
)
CARD_COMPANY_SELECTORS: tuple[str, ...] = ('a[data-cy="card-company-link"]',)
CARD_LOCATION_SELECTORS: tuple[str, ...] = ('span[data-cy="card-location"]',)
CARD_SALARY_SELECTORS: tuple[str, ...] = ('span[data-cy="card-salary"]',)
CARD_POSTED_DATE_SELECTORS: tuple[str, ...] = ('span[data-cy="card-posted-date"]',)
PAGINATION_NEXT_ENABLED: str = 'button[data-cy="pagination-next"]:not([disabled])'
TOTAL_JOBS: str = 'span[data-cy="totalJobs"]'

# --- Job detail page ---
TITLE_SELECTORS: tuple[str, ...] = ('h1[data-cy="jobTitle"]', "h1")
COMPANY_SELECTORS: tuple[str, ...] = (
    'a[data-cy="companyNameLink"]',
    'span[data-cy="companyName"]',
)
LOCATION_SELECTORS: tuple[str, ...] = (
    'li[data-cy="location"]',
    'li:-soup-contains("Location")',
)
SALARY_SELECTORS: tuple[str, ...] = ('li[data-cy="compensationText"]',)
JOB_TYPE_SELECTORS: tuple[str, ...] = ('li[data-cy="employmentType"]',)
WORKPLACE_TYPE_SELECTORS: tuple[str, ...] = ('li[data-cy="workFromHome"]',)
POSTED_DATE_SELECTORS: tuple[str, ...] = ('li[data-cy="postedDate"]',)
DESCRIPTION_SELECTORS: tuple[str, ...] = ('div[data-cy="jobDescription"]',)
SKILL_SELECTORS: tuple[str, ...] = ('div[data-cy="skillsList"] span', "div.skill-badge")
EXPERIENCE_LEVEL_SELECTORS: tuple[str, ...] = ('li[data-cy="experienceLevel"]',)
EDUCATION_LEVEL_SELECTORS: tuple[str, ...] = ('li[data-cy="educationLevel"]',)
BENEFIT_SELECTORS: tuple[str, ...] = ('div[data-cy="benefits"] li',)
COMPANY_DESCRIPTION_SELECTORS: tuple[str, ...] = ('div[data-cy="companyDescription"]',)
COMPANY_LOGO_SELECTORS: tuple[str, ...] = ('img[data-cy="company-logo"]',)
APPLY_BUTTON_SELECTORS: tuple[str, ...] = (
    'a[data-cy="apply-button-wl"]',
    'button[data-cy="apply-button"]',
)
EASY_APPLY_BADGE: str = '[data-cy="easyApplyBadge"]'
