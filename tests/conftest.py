"""Test configuration."""

import json
import zipfile
from pathlib import Path

import pytest

from typo3_upgrade_planner.catalog import ReleaseCatalog
from typo3_upgrade_planner.extraction import MappingArchiveReader


class FixedEstimator:
    """Estimator returning constant values, so estimated fields are recognizable."""

    def table_count(self, extension_count: int) -> int:
        return 99

    def database_version(self, platform_version: str | None) -> str:
        return "9.9.9"

    def platform_version(self, has_public_folder: bool, has_core_icons: bool) -> str:
        return "11.5.0"


@pytest.fixture
def estimator():
    """Deterministic estimator."""
    return FixedEstimator()


@pytest.fixture
def catalog():
    """Catalog built from the bundled release table."""
    return ReleaseCatalog()


@pytest.fixture
def composer_files():
    """Files of a composer-managed project."""
    manifest = {
        "name": "acme/site",
        "require": {
            "php": "^8.1",
            "typo3/cms-core": "^12.4",
            "typo3/cms-backend": "^12.4",
            "typo3/class-alias-loader": "^1.1",
            "helhum/typo3-console": "^8.0",
            "georgringer/news": "^11.0",
            "ext-json": "*",
        },
        "require-dev": {
            "typo3/testing-framework": "^8.0",
            "b13/container": "^2.3",
        },
        "config": {
            "platform": {"php": "8.1.27"},
            "allow-plugins": {"typo3/cms-composer-installers": True},
        },
    }
    emconf = """<?php
$EM_CONF[$_EXTKEY] = [
    'title' => 'News system',
    'version' => '11.4.1',
    'author' => 'Georg Ringer',
    'constraints' => [
        'depends' => [
            'typo3' => '11.5.0-12.4.99',
        ],
    ],
];
"""
    return {
        "composer.json": json.dumps(manifest),
        "vendor/georgringer/news/ext_emconf.php": emconf,
        "vendor/georgringer/news/Classes/Controller/NewsController.php": "<?php",
        "vendor/georgringer/news/Classes/Domain/Model/News.php": "<?php",
        "vendor/georgringer/news/Classes/Domain/Repository/NewsRepository.php": "<?php",
        "public/index.php": "<?php",
        "config/system/settings.php": "<?php return ['DB' => ['Connections' => ['Default' => ["
        "'driver' => 'mysqli', 'host' => 'db', 'dbname' => 'site', 'port' => 3306]]]];",
    }


@pytest.fixture
def composer_reader(composer_files):
    """Reader over the composer-managed project."""
    return MappingArchiveReader(composer_files, name="composer-project")


@pytest.fixture
def manual_files():
    """Files of a manual (non-composer) installation."""
    return {
        "typo3_src/typo3/sysext/core/Classes/Information/Typo3Version.php": (
            "<?php\nfinal class Typo3Version\n{\n    protected const VERSION = '10.4.37';\n}\n"
        ),
        "typo3conf/PackageStates.php": """<?php
return [
    'packages' => [
        'core' => [
            'packagePath' => 'typo3/sysext/core/',
        ],
        'fluid_styled_content' => [
            'packagePath' => 'typo3/sysext/fluid_styled_content/',
        ],
        'powermail' => [
            'packagePath' => 'typo3conf/ext/powermail/',
        ],
        'realurl' => [
            'packagePath' => 'typo3conf/ext/realurl/',
            'state' => 'inactive',
        ],
    ],
    'version' => 5,
];
""",
        "typo3conf/ext/powermail/ext_emconf.php": (
            "<?php\n$EM_CONF[$_EXTKEY] = ['title' => 'powermail', 'version' => '8.5.0', "
            "'author' => 'Alex Kellner', 'constraints' => ['depends' => ['typo3' => '10.4.0-10.4.99']]];"
        ),
        "typo3conf/ext/powermail/ext_tables.php": "<?php",
        "typo3conf/ext/powermail/ext_localconf.php": "<?php",
        "typo3conf/ext/realurl/ext_emconf.php": (
            "<?php\n$EM_CONF[$_EXTKEY] = array('title' => 'RealURL', 'version' => '2.6.2');"
        ),
        "typo3conf/ext/sitepackage/ext_emconf.php": (
            "<?php\n$EM_CONF[$_EXTKEY] = ['title' => 'Site package', 'version' => '1.2.0'];"
        ),
        "typo3conf/ext/sitepackage/Configuration/TypoScript/setup.typoscript": "page = PAGE",
        "typo3conf/ext/sitepackage/Resources/Private/Templates/Page.html": "<html></html>",
        "typo3conf/LocalConfiguration.php": (
            "<?php return ['DB' => ['Connections' => ['Default' => ['driver' => 'mysqli', "
            "'host' => 'localhost', 'dbname' => 'legacy']]]];"
        ),
        "typo3temp/dumps/site.sql": (
            "-- MySQL dump 10.13  Distrib 5.7.42, for Linux (x86_64)\n"
            "CREATE TABLE `pages` (uid int);\n"
            "CREATE TABLE `tt_content` (uid int);\n"
            "CREATE TABLE IF NOT EXISTS `be_users` (uid int);\n"
        ),
    }


@pytest.fixture
def manual_reader(manual_files):
    """Reader over the manual installation."""
    return MappingArchiveReader(manual_files, name="manual-project")


@pytest.fixture
def make_zip(tmp_path):
    """Factory writing a ``{path: text}`` mapping into a zip file."""

    def _make(files: dict[str, str], name: str = "project.zip", root: str = "") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w") as archive:
            for entry, content in files.items():
                archive.writestr(root + entry, content)
        return path

    return _make


@pytest.fixture
def export_document():
    """Backend export document."""
    return {
        "TYPO3Version": "11.5.30",
        "PHPVersion": "8.1.2",
        "ExportTimestamp": "2026-03-01T10:00:00Z",
        "ExportedBy": "admin",
        "InstalledExtensions": [
            {"ExtensionKey": "typo3/cms-backend", "Version": "11.5.30"},
            {"ExtensionKey": "georgringer/news", "Version": "10.0.3"},
            {"ExtensionKey": "helhum/typo3-console", "Version": ""},
            {"ExtensionKey": "gridelementsteam/gridelements", "Version": "11.0.0"},
        ],
        "DatabaseInfo": {
            "Driver": "MySQL",
            "Version": "8.0.35",
            "TableCount": 120,
        },
    }
