"""Release data bundled with the package, used until an upstream refresh succeeds."""

from typo3_upgrade_planner.models import Release, ReleaseType

# Minor version that became LTS for each major
LTS_MINORS: dict[int, int] = {
    6: 2,
    7: 6,
    8: 7,
    9: 5,
    10: 4,
    11: 5,
    12: 4,
    13: 4,
}

PHP_BY_MAJOR: dict[int, str] = {
    13: "8.2 - 8.4",
    12: "8.1 - 8.3",
    11: "7.4 - 8.1",
    10: "7.2 - 7.4",
    9: "7.2 - 7.3",
    8: "7.0 - 7.2",
    7: "5.5 - 7.0",
}

DEFAULT_DATABASE_REQUIREMENT = "5.5+ / MySQL 5.5+"
DEFAULT_COMPOSER_REQUIREMENT = "1.5+"


def default_php_requirement(major: int) -> str:
    """PHP range for a major when the source does not state one."""
    if major in PHP_BY_MAJOR:
        return PHP_BY_MAJOR[major]
    if major > max(PHP_BY_MAJOR):
        return "8.3+"
    return "7.0+"


def is_known_lts(major: int, minor: int) -> bool:
    """Check the historical LTS table."""
    return LTS_MINORS.get(major) == minor


BASELINE_RELEASES: tuple[Release, ...] = (
    Release(
        version="6.2",
        release_type=ReleaseType.LTS,
        release_date="2014-03-25",
        security_support_until="2017-03-31",
        php_requirement="5.3 - 5.6",
        database_requirement=DEFAULT_DATABASE_REQUIREMENT,
        composer_requirement=DEFAULT_COMPOSER_REQUIREMENT,
    ),
    Release(
        version="7.6",
        release_type=ReleaseType.LTS,
        release_date="2015-11-10",
        security_support_until="2018-11-30",
        php_requirement=PHP_BY_MAJOR[7],
        database_requirement=DEFAULT_DATABASE_REQUIREMENT,
        composer_requirement=DEFAULT_COMPOSER_REQUIREMENT,
    ),
    Release(
        version="8.7",
        release_type=ReleaseType.LTS,
        release_date="2017-04-04",
        security_support_until="2020-03-31",
        php_requirement=PHP_BY_MAJOR[8],
        database_requirement=DEFAULT_DATABASE_REQUIREMENT,
        composer_requirement=DEFAULT_COMPOSER_REQUIREMENT,
    ),
    Release(
        version="9.5",
        release_type=ReleaseType.LTS,
        release_date="2018-10-02",
        active_support_until="2020-09-30",
        security_support_until="2021-09-30",
        php_requirement=PHP_BY_MAJOR[9],
        database_requirement="5.5+ / MySQL 8.0+",
        composer_requirement="1.5+",
    ),
    Release(
        version="10.4",
        release_type=ReleaseType.LTS,
        release_date="2020-04-07",
        active_support_until="2022-04-30",
        security_support_until="2023-04-30",
        php_requirement=PHP_BY_MAJOR[10],
        database_requirement="5.7+ / MySQL 8.0.3+",
        composer_requirement="1.5+",
    ),
    Release(
        version="11.5",
        release_type=ReleaseType.LTS,
        release_date="2021-10-05",
        active_support_until="2023-10-31",
        security_support_until="2024-10-31",
        php_requirement=PHP_BY_MAJOR[11],
        database_requirement="10.2+ / MySQL 8.0.15+",
        composer_requirement="2.0+",
        needs_schema_change=False,
        needs_migration_wizard=True,
    ),
    Release(
        version="12.4",
        release_type=ReleaseType.LTS,
        release_date="2023-10-03",
        active_support_until="2025-10-31",
        security_support_until="2026-04-30",
        php_requirement=PHP_BY_MAJOR[12],
        database_requirement="10.3+ / MySQL 8.0.17+",
        composer_requirement="2.0+",
        needs_schema_change=True,
        needs_migration_wizard=False,
    ),
    Release(
        version="13.0",
        release_type=ReleaseType.DEV,
        release_date="2023-12-05",
        active_support_until="2024-03-05",
        security_support_until="2024-06-05",
        php_requirement="8.2 - 8.3",
        database_requirement="10.4.3+ / MySQL 8.0.17+",
        composer_requirement="2.0+",
    ),
    Release(
        version="13.1",
        release_type=ReleaseType.STS,
        release_date="2024-01-23",
        active_support_until="2024-05-31",
        security_support_until="2024-11-30",
        php_requirement="8.2 - 8.3",
        database_requirement="10.4.3+ / MySQL 8.0.17+",
        composer_requirement="2.0+",
        needs_schema_change=False,
        needs_migration_wizard=False,
    ),
    Release(
        version="13.2",
        release_type=ReleaseType.STS,
        release_date="2024-07-02",
        active_support_until="2024-07-31",
        security_support_until="2025-01-31",
        php_requirement="8.2 - 8.3",
        database_requirement="10.4.3+ / MySQL 8.0.17+",
        composer_requirement="2.0+",
        needs_schema_change=False,
        needs_migration_wizard=False,
    ),
    Release(
        version="13.3",
        release_type=ReleaseType.STS,
        release_date="2024-02-06",
        active_support_until="2024-08-06",
        security_support_until="2025-02-06",
        php_requirement="8.2 - 8.3",
        database_requirement="10.4.3+ / MySQL 8.0.17+",
        composer_requirement="2.0+",
        needs_schema_change=False,
        needs_migration_wizard=False,
    ),
    Release(
        version="13.4",
        release_type=ReleaseType.LTS,
        release_date="2024-04-08",
        active_support_until="2026-06-30",
        security_support_until="2027-12-31",
        php_requirement=PHP_BY_MAJOR[13],
        database_requirement="10.4.3+ / MySQL 8.0.17+",
        composer_requirement="2.0+",
        needs_schema_change=True,
        needs_migration_wizard=True,
    ),
)

# Bare extension key -> composer package
EXTENSION_MAPPINGS: dict[str, str] = {
    "headless": "friendsoftypo3/headless",
    "news": "georgringer/news",
    "gridelements": "gridelementsteam/gridelements",
    "mask": "mask/mask",
    "base_distribution": "typo3/cms-base-distribution",
    "form_framework": "typo3/cms-form",
    "solr": "apache-solr-for-typo3/solr",
    "powermail": "in2code/powermail",
    "rx_shariff": "reelworx/rx-shariff",
    "container": "b13/container",
    "felogin": "typo3/cms-felogin",
    "redirects": "typo3/cms-redirects",
    "seo": "typo3/cms-seo",
    "fluid_styled_content": "typo3/cms-fluid-styled-content",
    "scheduler": "typo3/cms-scheduler",
    "tt_address": "friendsoftypo3/tt-address",
    "image_manipulation": "typo3/cms-image-manipulation",
    "google_sitemap": "dmitryd/typo3-realurl-google-sitemap",
    "realurl": "dmitryd/typo3-realurl",
    "bootstrap_package": "bk2k/bootstrap-package",
    "site_language_redirection": "sitegeist/site-language-redirection",
    "backend_theme": "typo3/cms-backend",
    "blog": "typo3/cms-blog",
}
