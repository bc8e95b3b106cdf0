"""Tests for archive based fact extraction."""

import json

import pytest

from typo3_upgrade_planner.exceptions import ExtractionError
from typo3_upgrade_planner.extraction import (
    ArchiveExtractor,
    DirectoryArchiveReader,
    ExtensionClassifier,
    MappingArchiveReader,
    ZipArchiveReader,
)
from typo3_upgrade_planner.extraction.archive import (
    extension_folder_candidates,
    parse_package_states,
)
from typo3_upgrade_planner.models import ExtensionType, InstallationMode


@pytest.fixture
def extractor(estimator):
    """Archive extractor with the fixed estimator."""
    return ArchiveExtractor(ExtensionClassifier(), estimator)


class TestReaders:
    """Test archive readers."""

    def test_zip_reader_strips_wrapping_folder(self, make_zip):
        """Test a single top-level folder is removed from entry names."""
        path = make_zip({"composer.json": "{}", "public/index.php": "<?php"}, root="site-main/")

        with ZipArchiveReader(path) as reader:
            assert sorted(reader.list_entries()) == ["composer.json", "public/index.php"]
            assert reader.read_text("composer.json") == "{}"

    def test_zip_reader_keeps_project_folders(self, make_zip):
        """Test a project folder like public/ is not mistaken for a wrapper."""
        path = make_zip({"public/index.php": "<?php", "public/typo3conf/ext/a/ext_emconf.php": ""})

        with ZipArchiveReader(path) as reader:
            assert "public/index.php" in reader.list_entries()

    def test_zip_reader_from_bytes(self, make_zip):
        """Test raw archive bytes are accepted."""
        path = make_zip({"composer.json": "{}"})

        with ZipArchiveReader(path.read_bytes()) as reader:
            assert reader.has_entry("composer.json")

    def test_zip_reader_rejects_garbage(self, tmp_path):
        """Test non-zip input raises ExtractionError."""
        broken = tmp_path / "broken.zip"
        broken.write_text("not a zip")

        with pytest.raises(ExtractionError):
            ZipArchiveReader(broken)

    def test_directory_reader(self, tmp_path):
        """Test a project directory is indexed with posix paths."""
        (tmp_path / "typo3conf" / "ext" / "news").mkdir(parents=True)
        (tmp_path / "typo3conf" / "ext" / "news" / "ext_emconf.php").write_text("<?php")
        (tmp_path / ".git").mkdir()
        (tmp_path / ".git" / "HEAD").write_text("ref")

        reader = DirectoryArchiveReader(tmp_path)

        assert reader.list_entries() == ["typo3conf/ext/news/ext_emconf.php"]
        assert reader.read_text("typo3conf/ext/news/ext_emconf.php") == "<?php"
        assert reader.read_text("missing.php") is None

    def test_directory_reader_requires_directory(self, tmp_path):
        """Test a missing directory raises ExtractionError."""
        with pytest.raises(ExtractionError):
            DirectoryArchiveReader(tmp_path / "missing")

    def test_find_by_suffix(self):
        """Test suffix lookups align with path separators."""
        reader = MappingArchiveReader({
            "project/typo3conf/PackageStates.php": "",
            "other/my_typo3conf/PackageStates.php": "",
        })
        assert reader.find("typo3conf/PackageStates.php") == "project/typo3conf/PackageStates.php"


class TestPackageManagerExtraction:
    """Test composer-managed installations."""

    def test_platform_and_mode(self, extractor, composer_reader):
        """Test the core constraint gives the platform version."""
        facts = extractor.extract(composer_reader)

        assert facts.installation_mode == InstallationMode.PACKAGE_MANAGER
        assert facts.platform_version == "12.4"
        assert not facts.platform_version_estimated
        assert facts.source == "archive"

    def test_runtime(self, extractor, composer_reader):
        """Test PHP requirement and platform pin."""
        facts = extractor.extract(composer_reader)

        assert facts.runtime_version == "8.1"
        assert facts.runtime_platform_version == "8.1.27"
        assert facts.allowed_plugins == {"typo3/cms-composer-installers": True}
        assert facts.has_extension_manager

    def test_extension_inventory(self, extractor, composer_reader):
        """Test tooling and platform requirements are not extensions."""
        facts = extractor.extract(composer_reader)

        assert [ext.key for ext in facts.extensions] == ["backend", "console", "news", "container"]

    def test_extension_manager_packages_listed(self, extractor):
        """Test extension manager packages are kept as extensions."""
        reader = MappingArchiveReader({
            "composer.json": json.dumps({
                "require": {
                    "typo3/cms-core": "^12.4",
                    "helhum/typo3-console": "^8.0",
                    "typo3/cms-composer-installers": "^5.0",
                },
            }),
        })

        facts = extractor.extract(reader)

        assert facts.has_extension_manager
        assert [ext.key for ext in facts.extensions] == ["console", "composer_installers"]
        console = facts.find_extension("console")
        assert console.package_name == "helhum/typo3-console"
        assert console.version == "8.0"
        assert not console.bundled

    def test_third_party_extension(self, extractor, composer_reader):
        """Test a vendor package with its folder metadata."""
        news = extractor.extract(composer_reader).find_extension("news")

        assert news.vendor == "georgringer"
        assert not news.bundled
        assert news.version == "11.4.1"
        assert news.typo3_constraint == "11.5.0-12.4.99"
        assert news.path == "vendor/georgringer/news/"
        assert news.extension_type == ExtensionType.EXTBASE

    def test_bundled_extension_inherits_platform(self, extractor, composer_reader):
        """Test core packages carry the platform version."""
        backend = extractor.extract(composer_reader).find_extension("backend")

        assert backend.bundled
        assert backend.vendor == "typo3"
        assert backend.version == "12.4"

    def test_dev_requirements(self, extractor, composer_reader):
        """Test require-dev packages are flagged and inactive."""
        container = extractor.extract(composer_reader).find_extension("container")

        assert container.is_dev
        assert not container.is_active
        assert container.version == "2.3"

    def test_database_from_settings(self, extractor, composer_reader):
        """Test connection details come from config/system/settings.php."""
        database = extractor.extract(composer_reader).database

        assert database.type == "mysql"
        assert database.host == "db"
        assert database.name == "site"
        assert database.port == 3306
        assert database.source_file == "config/system/settings.php"

    def test_missing_database_values_are_estimated(self, extractor, composer_reader):
        """Test estimated values are flagged."""
        database = extractor.extract(composer_reader).database

        assert database.table_count == 99
        assert database.table_count_estimated
        assert database.version == "9.9.9"
        assert database.version_estimated

    def test_version_from_lock_file(self, extractor):
        """Test composer.lock is used when the manifest has no core constraint."""
        reader = MappingArchiveReader({
            "composer.json": json.dumps({"require": {"typo3/cms-core": "dev-main"}}),
            "composer.lock": json.dumps({"packages": [{"name": "typo3/cms-core", "version": "v12.4.8"}]}),
        })

        facts = extractor.extract(reader)

        assert facts.platform_version == "12.4.8"
        assert "composer.lock" in facts.analyzed_paths

    def test_nested_manifest(self, extractor):
        """Test a manifest below a project folder is found, vendor manifests are not."""
        reader = MappingArchiveReader({
            "vendor/georgringer/news/composer.json": "{}",
            "site/composer.json": json.dumps({"require": {"typo3/cms-core": "^11.5"}}),
        })

        assert ArchiveExtractor.find_manifest(reader) == "site/composer.json"
        assert extractor.extract(reader).platform_version == "11.5"

    def test_invalid_manifest(self, extractor):
        """Test an unparseable manifest falls back to version detection."""
        reader = MappingArchiveReader({"composer.json": "{not json"})

        facts = extractor.extract(reader)

        assert facts.installation_mode == InstallationMode.PACKAGE_MANAGER
        assert facts.platform_version == "11.5.0"
        assert facts.platform_version_estimated


class TestManualExtraction:
    """Test installations without a dependency manifest."""

    def test_platform_from_version_file(self, extractor, manual_reader):
        """Test the version constant is read from the core source."""
        facts = extractor.extract(manual_reader)

        assert facts.installation_mode == InstallationMode.MANUAL
        assert facts.platform_version == "10.4.37"
        assert not facts.platform_version_estimated

    def test_package_states_first(self, extractor, manual_reader):
        """Test PackageStates order comes first, scanned folders after."""
        facts = extractor.extract(manual_reader)

        assert [ext.key for ext in facts.extensions] == [
            "fluid_styled_content",
            "powermail",
            "realurl",
            "sitepackage",
        ]

    def test_core_package_skipped(self, extractor, manual_reader):
        """Test the core itself is not an extension."""
        assert extractor.extract(manual_reader).find_extension("core") is None

    def test_package_state_flags(self, extractor, manual_reader):
        """Test inactive packages and sysext locations."""
        facts = extractor.extract(manual_reader)

        assert facts.find_extension("fluid_styled_content").bundled
        assert facts.find_extension("fluid_styled_content").version == "10.4.37"
        assert not facts.find_extension("realurl").is_active
        assert facts.find_extension("powermail").is_active

    def test_folder_metadata(self, extractor, manual_reader):
        """Test ext_emconf.php fields and structure type."""
        powermail = extractor.extract(manual_reader).find_extension("powermail")

        assert powermail.version == "8.5.0"
        assert powermail.author == "Alex Kellner"
        assert powermail.typo3_constraint == "10.4.0-10.4.99"
        assert powermail.extension_type == ExtensionType.CLASSIC

    def test_scanned_folder_type(self, extractor, manual_reader):
        """Test a folder missing from PackageStates is still found."""
        sitepackage = extractor.extract(manual_reader).find_extension("sitepackage")

        assert sitepackage.version == "1.2.0"
        assert sitepackage.extension_type == ExtensionType.FRONTEND

    def test_database_dump(self, extractor, manual_reader):
        """Test the dump provides table count and server version."""
        database = extractor.extract(manual_reader).database

        assert database.table_count == 3
        assert not database.table_count_estimated
        assert database.version == "5.7.42"
        assert not database.version_estimated
        assert database.name == "legacy"
        assert database.dump_file == "typo3temp/dumps/site.sql"

    def test_analyzed_paths(self, extractor, manual_reader):
        """Test consulted files are recorded."""
        paths = extractor.extract(manual_reader).analyzed_paths

        assert "typo3conf/PackageStates.php" in paths
        assert "typo3conf/ext/powermail/" in paths

    def test_legacy_define_version(self, extractor):
        """Test the pre-9 define() form is understood."""
        reader = MappingArchiveReader({
            "typo3_src/typo3/sysext/core/Classes/Core/SystemEnvironmentBuilder.php": (
                "<?php\ndefine('TYPO3_version', '7.6.32');\n"
            ),
        })

        assert extractor.extract(reader).platform_version == "7.6.32"

    def test_version_from_local_configuration(self, extractor):
        """Test the system configuration is the second source."""
        reader = MappingArchiveReader({
            "typo3conf/LocalConfiguration.php": "<?php return ['SYS' => ['version' => '9.5.31']];",
        })

        assert extractor.extract(reader).platform_version == "9.5.31"

    def test_estimated_version(self, extractor):
        """Test a structural estimate is flagged."""
        reader = MappingArchiveReader({"public/index.php": "<?php"})

        facts = extractor.extract(reader)

        assert facts.platform_version == "11.5.0"
        assert facts.platform_version_estimated

    def test_vendor_folders_need_extension_markers(self, extractor):
        """Test plain libraries below vendor/ are not extensions."""
        reader = MappingArchiveReader({
            "vendor/symfony/console/Resources/config.php": "<?php",
            "vendor/b13/container/Configuration/TCA/Overrides/tt_content.php": "<?php",
            "vendor/b13/container/ext_emconf.php": "<?php $EM_CONF[$_EXTKEY] = ['version' => '2.3.1'];",
        })

        keys = [ext.key for ext in extractor.extract(reader).extensions]

        assert keys == ["container"]


class TestPackageStates:
    """Test PackageStates.php parsing."""

    def test_legacy_array_syntax(self):
        """Test the array() form with explicit states."""
        content = """<?php
return array(
    'packages' => array(
        'news' => array(
            'state' => 'active',
            'packagePath' => 'typo3conf/ext/news/',
        ),
        'tt_news' => array(
            'state' => 'inactive',
            'packagePath' => 'typo3conf/ext/tt_news/',
        ),
    ),
);
"""
        states = parse_package_states(content)

        assert [(s.key, s.active) for s in states] == [("news", True), ("tt_news", False)]
        assert states[0].package_path == "typo3conf/ext/news/"

    def test_candidates_cover_known_vendors(self):
        """Test folder candidates expand vendor templates."""
        candidates = extension_folder_candidates("tt_address", "friendsoftypo3/tt-address")

        assert candidates[0] == "vendor/friendsoftypo3/tt-address/"
        assert "typo3conf/ext/tt_address/" in candidates
        assert "vendor/georgringer/tt-address/" in candidates
