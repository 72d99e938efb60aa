"""
Unit tests for CategoryService
"""
from unittest.mock import MagicMock

import pytest

from buysell.core.exceptions import BadRequestError, NotFoundError
from buysell.domain.category import Category, CategoryCreate, CategoryUpdate, build_category_tree, slugify
from buysell.services.category_service import CategoryService


def _category(**overrides) -> Category:
    data = {"id": 5, "name": "Phones", "slug": "phones", "parent_id": None}
    data.update(overrides)
    return Category(**data)


@pytest.fixture
def repos():
    return {"category_repo": MagicMock(), "product_repo": MagicMock()}


@pytest.fixture
def service(repos):
    return CategoryService(**repos)


class TestSlugify:

    @pytest.mark.parametrize("name,expected", [
        ("Home & Garden", "home-garden"),
        ("  Phones  ", "phones"),
        ("Men's  Shoes", "mens-shoes"),
        ("TV -- Audio", "tv-audio"),
        ("Téléphones", "tlphones"),
    ])
    def test_slugify(self, name, expected):
        assert slugify(name) == expected


class TestTree:

    def test_children_nested_under_parents(self):
        categories = [
            _category(id=1, name="Electronics", slug="electronics"),
            _category(id=2, name="Phones", slug="phones", parent_id=1),
            _category(id=3, name="Fashion", slug="fashion"),
        ]

        tree = build_category_tree(categories)

        assert [node["slug"] for node in tree] == ["electronics", "fashion"]
        assert [child["slug"] for child in tree[0]["children"]] == ["phones"]
        assert tree[1]["children"] == []


class TestCreateCategory:

    def test_slug_generated_from_name(self, service, repos):
        repos["category_repo"].create.return_value = _category(name="Home & Garden", slug="home-garden")

        service.create_category(CategoryCreate(name="Home & Garden"))

        assert repos["category_repo"].create.call_args[1]["slug"] == "home-garden"

    def test_missing_parent(self, service, repos):
        repos["category_repo"].find_by_id.return_value = None

        with pytest.raises(NotFoundError, match="Parent"):
            service.create_category(CategoryCreate(name="Phones", parent_id=77))

    def test_name_without_letters_rejected(self, service):
        with pytest.raises(BadRequestError):
            service.create_category(CategoryCreate(name="!!!"))


class TestUpdateCategory:

    def test_cannot_be_own_parent(self, service, repos):
        repos["category_repo"].find_by_id.return_value = _category()

        with pytest.raises(BadRequestError, match="own parent"):
            service.update_category(5, CategoryUpdate(parent_id=5))

    def test_rename_regenerates_slug(self, service, repos):
        repos["category_repo"].find_by_id.return_value = _category()

        service.update_category(5, CategoryUpdate(name="Smart Phones"))

        repos["category_repo"].update.assert_called_once_with(5, {"name": "Smart Phones", "slug": "smart-phones"})

    def test_rename_to_punctuation_only_rejected(self, service, repos):
        repos["category_repo"].find_by_id.return_value = _category()

        with pytest.raises(BadRequestError, match="letters or digits"):
            service.update_category(5, CategoryUpdate(name="!!!"))

        repos["category_repo"].update.assert_not_called()


class TestDeleteCategory:

    def test_refused_while_products_use_it(self, service, repos):
        repos["category_repo"].find_by_id.return_value = _category()
        repos["category_repo"].count_products.return_value = 3

        with pytest.raises(BadRequestError, match="3 product"):
            service.delete_category(5)

        repos["category_repo"].soft_delete.assert_not_called()

    def test_refused_with_subcategories(self, service, repos):
        repos["category_repo"].find_by_id.return_value = _category()
        repos["category_repo"].count_products.return_value = 0
        repos["category_repo"].count_subcategories.return_value = 1

        with pytest.raises(BadRequestError, match="subcategories"):
            service.delete_category(5)

    def test_soft_deletes_empty_category(self, service, repos):
        repos["category_repo"].find_by_id.return_value = _category()
        repos["category_repo"].count_products.return_value = 0
        repos["category_repo"].count_subcategories.return_value = 0

        service.delete_category(5)

        repos["category_repo"].soft_delete.assert_called_once_with(5)
