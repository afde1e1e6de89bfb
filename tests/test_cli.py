import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from casaos_appstore import cli
from casaos_appstore.main import adapt_compose_file, list_upgrades, write_adapted_compose
from casaos_appstore.parser import compose_app_from_dict, load_compose_file
from casaos_appstore.store import LocalAppStore, image_digest, key_by_store_app_id, load_apps_dir, load_id_list

IMMICH = """
name: immich
services:
  immich:
    image: ghcr.io/immich-app/immich-server:{tag}
    ports:
      - "2283:2283"
    volumes:
      - /DATA/AppData/immich/upload:/usr/src/app/upload
x-casaos:
  main: immich
  store_app_id: immich
  title:
    en_US: Immich
  category: Gallery
  author: Immich
  developer: immich
  architectures:
    - amd64
    - arm64
"""

PIHOLE = """
name: pihole
services:
  pihole:
    image: pihole/pihole:{tag}
    network_mode: host
x-casaos:
  main: pihole
  store_app_id: pihole
  title:
    en_US: Pi-hole
  category: Network
  author: community-dev
  developer: Pi-hole
  architectures: amd64
"""


def write_app(root: Path, name: str, text: str) -> Path:
    app_dir = root / name
    app_dir.mkdir(parents=True)
    path = app_dir / "docker-compose.yml"
    path.write_text(text, encoding="utf-8")
    return path


def run_cli(argv):
    buffer = io.StringIO()
    with contextlib.redirect_stdout(buffer):
        code = cli.main(argv)
    return code, buffer.getvalue()


class StoreDirectoryTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.apps = self.root / "Apps"
        self.installed = self.root / "installed"
        write_app(self.apps, "immich", IMMICH.format(tag="v1.106.0"))
        write_app(self.apps, "pihole", PIHOLE.format(tag="latest@sha256:new"))
        write_app(self.apps, "broken", "services: [not, a, mapping]\n")
        (self.apps / "empty").mkdir()


class LocalAppStoreTests(StoreDirectoryTestCase):
    def test_broken_and_empty_directories_are_skipped(self):
        catalog = load_apps_dir(self.apps)
        self.assertEqual(list(catalog), ["immich", "pihole"])
        self.assertEqual(catalog["immich"].name, "immich")

    def test_missing_directory_raises(self):
        with self.assertRaises(FileNotFoundError):
            load_apps_dir(self.root / "nope")

    def test_tag_change_means_update(self):
        store = LocalAppStore.from_dir(self.apps)
        installed = compose_app_from_dict(load_compose_file_from_text(IMMICH.format(tag="v1.105.0")))
        self.assertTrue(store.is_update_available(installed))
        current = compose_app_from_dict(load_compose_file_from_text(IMMICH.format(tag="v1.106.0")))
        self.assertFalse(store.is_update_available(current))

    def test_floating_tag_compares_digests(self):
        store = LocalAppStore.from_dir(self.apps)
        old = compose_app_from_dict(load_compose_file_from_text(PIHOLE.format(tag="latest@sha256:old")))
        same = compose_app_from_dict(load_compose_file_from_text(PIHOLE.format(tag="latest@sha256:new")))
        unpinned = compose_app_from_dict(load_compose_file_from_text(PIHOLE.format(tag="latest")))
        self.assertTrue(store.is_update_available(old))
        self.assertFalse(store.is_update_available(same))
        self.assertFalse(store.is_update_available(unpinned))

    def test_updating_flag(self):
        store = LocalAppStore({}, updating=["a"])
        store.mark_updating("b")
        self.assertTrue(store.is_updating("a"))
        self.assertTrue(store.is_updating("b"))
        self.assertFalse(store.is_updating("c"))

    def test_helpers(self):
        self.assertEqual(image_digest("nginx@sha256:abc"), "sha256:abc")
        self.assertIsNone(image_digest("nginx:latest"))

        ids_file = self.root / "recommend.yml"
        ids_file.write_text("- immich\n- pihole\n", encoding="utf-8")
        self.assertEqual(load_id_list(ids_file), ["immich", "pihole"])

        write_app(self.installed, "my-photos", IMMICH.format(tag="v1"))
        keyed = key_by_store_app_id(load_apps_dir(self.installed))
        self.assertEqual(list(keyed), ["immich"])

    def test_list_upgrades(self):
        write_app(self.installed, "immich", IMMICH.format(tag="v1.105.0"))
        write_app(self.installed, "pihole", PIHOLE.format(tag="latest@sha256:old"))
        results = list_upgrades(self.apps, self.installed, updating=["pihole"])
        self.assertEqual(
            [(item["store_app_id"], item["version"], item["status"]) for item in results],
            [("immich", "v1.106.0", "idle"), ("pihole", "latest", "updating")],
        )


def load_compose_file_from_text(text):
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "docker-compose.yml"
        path.write_text(text, encoding="utf-8")
        return load_compose_file(path)


class AdaptFileTests(unittest.TestCase):
    def test_adapt_and_write(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = write_app(Path(tmp), "immich", IMMICH.format(tag="v1"))
            app = adapt_compose_file(source, environ={"DATA_ROOT": "/mnt/data", "REF_DOMAIN": "example.com"})
            output = Path(tmp) / "out.yml"
            write_adapted_compose(app, output, dry_run=False)

            written = load_compose_file(output)
            service = written["services"]["immich"]
            self.assertEqual(service["volumes"][0]["source"], "/mnt/data/AppData/immich/upload")
            self.assertEqual(service["expose"], ["2283"])
            self.assertNotIn("ports", service)
            self.assertEqual(written["x-casaos"]["hostname"], "2283-immich-example.com")

    def test_dry_run_prints_instead_of_writing(self):
        with tempfile.TemporaryDirectory() as tmp:
            source = write_app(Path(tmp), "immich", IMMICH.format(tag="v1"))
            app = adapt_compose_file(source, environ={})
            output = Path(tmp) / "out.yml"
            buffer = io.StringIO()
            with contextlib.redirect_stdout(buffer):
                write_adapted_compose(app, output, dry_run=True)
            self.assertFalse(output.exists())
            self.assertIn("/DATA/AppData/immich/upload", buffer.getvalue())


class CliTests(StoreDirectoryTestCase):
    def test_catalog_command(self):
        code, out = run_cli(["catalog", str(self.apps), "--arch", "arm64"])
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(list(data["list"]), ["immich"])
        self.assertNotIn("installed", data)

    def test_catalog_filters_and_installed(self):
        write_app(self.installed, "pihole", PIHOLE.format(tag="latest"))
        code, out = run_cli(
            [
                "catalog",
                str(self.apps),
                "--arch",
                "amd64",
                "--author-type",
                "community",
                "--installed-dir",
                str(self.installed),
            ]
        )
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(list(data["list"]), ["pihole"])
        self.assertEqual(data["installed"], ["pihole"])

    def test_categories_command(self):
        code, out = run_cli(["categories", str(self.apps)])
        self.assertEqual(code, 0)
        categories = json.loads(out)
        self.assertEqual(
            [(item["id"], item["name"], item["count"]) for item in categories],
            [(0, "All", 2), (1, "Gallery", 1), (2, "Network", 1)],
        )

    def test_failure_returns_non_zero(self):
        code, out = run_cli(["categories", str(self.root / "missing")])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")


if __name__ == "__main__":
    unittest.main()
