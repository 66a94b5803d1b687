"""
tests/test_strategies.py
Unit tests for dbscaffold.strategies: which constructs each configuration
style emits for the same property.
"""

from __future__ import annotations

import pytest

from dbscaffold.models import ConfigurationStyle
from dbscaffold.strategies import (
    AnnotationsAndFluentStrategy,
    AnnotationsOnlyStrategy,
    FluentApiOnlyStrategy,
    get_emission_strategy,
)

from conftest import fk, pk, prop, table


@pytest.fixture()
def product_table():
    return table(
        "Product",
        pk(),
        prop("name", max_length=100, min_length=2),
        prop("price", "decimal", range_min=0, range_max=10000, column_type_name="decimal(18,2)"),
        prop("code", is_nullable=True, regex_pattern="^[A-Z]+$"),
        prop("contact", is_nullable=True, is_email_address=True),
        prop("row_version", "byte-sequence", is_nullable=True, is_timestamp=True),
    )


class TestRegistry:
    @pytest.mark.parametrize(
        "style, cls",
        [
            ("AnnotationsAndFluentApi", AnnotationsAndFluentStrategy),
            ("AnnotationsOnly", AnnotationsOnlyStrategy),
            ("FluentApiOnly", FluentApiOnlyStrategy),
            (ConfigurationStyle.FLUENT_API_ONLY, FluentApiOnlyStrategy),
        ],
    )
    def test_lookup(self, style, cls) -> None:
        assert isinstance(get_emission_strategy(style), cls)

    def test_unknown_style(self) -> None:
        with pytest.raises(ValueError):
            get_emission_strategy("Xml")

    @pytest.mark.parametrize(
        "cls", [AnnotationsAndFluentStrategy, AnnotationsOnlyStrategy, FluentApiOnlyStrategy]
    )
    def test_annotation_flag_matches_output(self, cls, product_table) -> None:
        strategy = cls()
        annotated = any(
            strategy.property_annotations(p, product_table) for p in product_table.properties
        )
        assert strategy.emits_annotations is annotated
        assert not hasattr(strategy, "emits_fluent_constraints")


class TestAnnotations:
    def test_single_key_gets_key_attribute(self, product_table) -> None:
        strategy = AnnotationsAndFluentStrategy()
        assert strategy.property_annotations(product_table.properties[0], product_table) == ["[Key]"]

    def test_composite_key_has_no_key_attribute(self) -> None:
        line = table("Line", pk("order_id"), pk("product_id"))
        strategy = AnnotationsOnlyStrategy()
        assert strategy.property_annotations(line.properties[0], line) == []

    def test_text_facets_in_order(self, product_table) -> None:
        strategy = AnnotationsAndFluentStrategy()
        assert strategy.property_annotations(product_table.properties[1], product_table) == [
            "[MaxLength(100)]",
            "[MinLength(2)]",
            "[Required]",
        ]

    def test_range_and_column_type(self, product_table) -> None:
        strategy = AnnotationsOnlyStrategy()
        assert strategy.property_annotations(product_table.properties[2], product_table) == [
            "[Range(0, 10000)]",
            '[Column(TypeName = "decimal(18,2)")]',
        ]

    def test_open_ended_range(self) -> None:
        t = table("Stock", pk(), prop("quantity", "integer32", range_min=1))
        strategy = AnnotationsOnlyStrategy()
        assert strategy.property_annotations(t.properties[1], t) == [
            "[Range(1, double.MaxValue)]"
        ]

    def test_regex_email_timestamp(self, product_table) -> None:
        strategy = AnnotationsAndFluentStrategy()
        assert strategy.property_annotations(product_table.properties[3], product_table) == [
            '[RegularExpression(@"^[A-Z]+$")]'
        ]
        assert strategy.property_annotations(product_table.properties[4], product_table) == [
            "[EmailAddress]"
        ]
        assert strategy.property_annotations(product_table.properties[5], product_table) == [
            "[Timestamp]"
        ]

    def test_nullable_text_is_not_required(self) -> None:
        t = table("Note", pk(), prop("body", is_nullable=True))
        assert "[Required]" not in AnnotationsOnlyStrategy().property_annotations(t.properties[1], t)

    def test_fluent_only_emits_no_annotations(self, product_table) -> None:
        strategy = FluentApiOnlyStrategy()
        for p in product_table.properties:
            assert strategy.property_annotations(p, product_table) == []

    def test_model_usings(self) -> None:
        assert "System.ComponentModel.DataAnnotations" in AnnotationsOnlyStrategy().model_usings()
        assert "System.ComponentModel.DataAnnotations" not in FluentApiOnlyStrategy().model_usings()


class TestNavigationAnnotations:
    def test_conventional_key_needs_no_attribute(self) -> None:
        p = fk("author_id", "Author", "author")
        assert AnnotationsOnlyStrategy().navigation_annotations(p) == []

    def test_unconventional_key_gets_foreign_key_attribute(self) -> None:
        p = fk("written_by", "Author", "writer")
        assert AnnotationsOnlyStrategy().navigation_annotations(p) == ['[ForeignKey("WrittenBy")]']

    def test_fluent_only(self) -> None:
        p = fk("written_by", "Author", "writer")
        assert FluentApiOnlyStrategy().navigation_annotations(p) == []


class TestFluentLines:
    def test_combined_style_emits_storage_facets(self, product_table) -> None:
        lines = AnnotationsAndFluentStrategy().fluent_property_lines(product_table)
        assert lines == [
            "entity.Property(e => e.Name).HasMaxLength(100).IsRequired();",
            'entity.Property(e => e.Price).HasColumnType("decimal(18,2)");',
            "entity.Property(e => e.RowVersion).IsRowVersion();",
        ]

    def test_annotations_only_emits_nothing(self, product_table) -> None:
        assert AnnotationsOnlyStrategy().fluent_property_lines(product_table) == []

    def test_fluent_only_adds_check_constraints_and_notes(self, product_table) -> None:
        lines = FluentApiOnlyStrategy().fluent_property_lines(product_table)
        assert (
            'entity.ToTable(t => t.HasCheckConstraint("CK_Product_Name_MinLength", '
            '"LEN([Name]) >= 2"));'
        ) in lines
        assert (
            'entity.ToTable(t => t.HasCheckConstraint("CK_Product_Price_Range", '
            '"[Price] >= 0 AND [Price] <= 10000"));'
        ) in lines
        assert "// Code: regular expression validation has no fluent equivalent." in lines
        assert "// Contact: email address validation has no fluent equivalent." in lines

    def test_concurrency_token(self) -> None:
        t = table("Doc", pk(), prop("version", "integer32", is_concurrency_token=True))
        assert FluentApiOnlyStrategy().fluent_property_lines(t) == [
            "entity.Property(e => e.Version).IsConcurrencyToken();"
        ]
