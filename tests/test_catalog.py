import unittest

from casaos_appstore.catalog import (
    build_category_map,
    category_list,
    curate_catalog,
    filter_by_architecture,
    filter_by_author_type,
    filter_by_category,
    filter_by_store_app_ids,
    installed_store_app_ids,
    list_store_info,
)
from casaos_appstore.models import AuthorType, CategoryInfo
from casaos_appstore.parser import compose_app_from_dict


def store_app(name, image, **x_casaos):
    return compose_app_from_dict(
        {
            "name": name,
            "services": {name: {"image": image}},
            "x-casaos": {"main": name, **x_casaos},
        }
    )


def sample_catalog():
    return {
        "immich": store_app(
            "immich",
            "ghcr.io/immich-app/immich-server:v1.105.0",
            category="Gallery",
            author="Immich",
            developer="immich",
            architectures=["amd64", "arm64"],
            title={"en_US": "Immich"},
        ),
        "nextcloud": store_app(
            "nextcloud",
            "nextcloud:29",
            category="Cloud",
            author="CasaOS Team",
            developer="Nextcloud GmbH",
            title={"en_US": "Nextcloud"},
        ),
        "pihole": store_app(
            "pihole",
            "pihole/pihole:2024.07.0",
            category="Network",
            author="community-dev",
            developer="Pi-hole",
            architectures=["amd64"],
        ),
        "broken": compose_app_from_dict(
            {"name": "broken", "services": {"app": {"image": "busybox"}}, "x-casaos": "oops"}
        ),
    }


class CategoryFilterTests(unittest.TestCase):
    def test_category_match_is_case_insensitive(self):
        catalog = sample_catalog()
        self.assertEqual(list(filter_by_category(catalog, "GALLERY")), ["immich"])

    def test_empty_category_is_a_no_op(self):
        catalog = sample_catalog()
        self.assertIs(filter_by_category(catalog, ""), catalog)
        self.assertIs(filter_by_category(catalog, None), catalog)


class AuthorTypeFilterTests(unittest.TestCase):
    def test_each_author_type(self):
        catalog = sample_catalog()
        self.assertEqual(list(filter_by_author_type(catalog, "official")), ["immich"])
        self.assertEqual(list(filter_by_author_type(catalog, "by_casaos")), ["nextcloud"])
        self.assertEqual(list(filter_by_author_type(catalog, "by-casaos")), ["nextcloud"])
        self.assertEqual(list(filter_by_author_type(catalog, "Community")), ["pihole"])
        self.assertEqual(list(filter_by_author_type(catalog, AuthorType.OFFICIAL)), ["immich"])

    def test_unknown_author_type_fails_closed(self):
        catalog = sample_catalog()
        for value in ("vendor", "", "unknown", AuthorType.UNKNOWN):
            with self.subTest(value=value):
                self.assertEqual(filter_by_author_type(catalog, value), {})


class ArchitectureFilterTests(unittest.TestCase):
    def test_missing_architectures_means_all(self):
        catalog = sample_catalog()
        self.assertEqual(list(filter_by_architecture(catalog, "arm64")), ["immich", "nextcloud"])
        self.assertEqual(
            list(filter_by_architecture(catalog, "amd64")),
            ["immich", "nextcloud", "pihole"],
        )

    def test_unresolvable_entries_are_dropped(self):
        catalog = sample_catalog()
        self.assertNotIn("broken", filter_by_architecture(catalog, "amd64"))
        self.assertNotIn("broken", list_store_info(catalog))


class StoreAppIdFilterTests(unittest.TestCase):
    def test_keeps_only_listed_ids(self):
        catalog = sample_catalog()
        self.assertEqual(list(filter_by_store_app_ids(catalog, ["pihole", "missing"])), ["pihole"])
        self.assertEqual(filter_by_store_app_ids(catalog, []), {})


class CurateCatalogTests(unittest.TestCase):
    def test_filters_compose(self):
        infos = curate_catalog(
            sample_catalog(),
            "arm64",
            author_type="official",
            recommended=["immich", "pihole"],
        )
        self.assertEqual(list(infos), ["immich"])
        self.assertEqual(infos["immich"].store_app_id, "immich")
        self.assertEqual(infos["immich"].title, {"en_US": "Immich"})

    def test_installed_ids_come_from_x_casaos(self):
        installed = {
            "my-immich": store_app("my-immich", "immich:v1", store_app_id="immich"),
            "handmade": store_app("handmade", "busybox"),
        }
        self.assertEqual(installed_store_app_ids(installed), ["immich"])


class CategoryListTests(unittest.TestCase):
    def test_all_entry_leads_with_total_count(self):
        categories = category_list(build_category_map(sample_catalog()))
        self.assertEqual(
            [(c.id, c.name, c.count) for c in categories],
            [(0, "All", 3), (1, "Cloud", 1), (2, "Gallery", 1), (3, "Network", 1)],
        )
        self.assertEqual(categories[0].font, "apps")
        self.assertEqual(categories[0].description, "All apps")

    def test_sum_invariant_for_supplied_map(self):
        category_map = {
            "Media": CategoryInfo(name="Media", font="movie", count=7),
            "AI": CategoryInfo(name="AI", font="robot", count=2),
            "Utilities": CategoryInfo(name="Utilities", count=0),
        }
        categories = category_list(category_map)
        self.assertEqual(categories[0].id, 0)
        self.assertEqual(categories[0].count, sum(c.count for c in categories[1:]))
        self.assertEqual([c.name for c in categories[1:]], ["AI", "Media", "Utilities"])
        self.assertIsNone(category_map["AI"].id)

    def test_empty_map_still_has_all(self):
        categories = category_list({})
        self.assertEqual(len(categories), 1)
        self.assertEqual((categories[0].id, categories[0].count), (0, 0))


if __name__ == "__main__":
    unittest.main()
