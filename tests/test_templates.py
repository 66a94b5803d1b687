"""
tests/test_templates.py
Unit tests for dbscaffold.templates (TemplateGenerator).

Tests cover:
- Entity classes (types, navigations, inverse collections, soft delete)
- DbContext wiring (keys, associations, delete behaviours, query filters)
- Generic and per-table repositories
- Services (signatures, not-found handling, blocking mirrors)
- Test scaffolds and DI registrations
- Artifact selection and determinism
"""

from __future__ import annotations

from typing import List

import pytest

from dbscaffold.models import GenerationRequest, NamingConventionOptions
from dbscaffold.relationships import resolve_inverse_relationships
from dbscaffold.templates import TemplateGenerator

from conftest import build_request, fk, pk, prop, table


HEADER = "// <auto-generated>Generated by dbscaffold.</auto-generated>"


def _context(request: GenerationRequest) -> str:
    tables = request.valid_tables()
    return TemplateGenerator(request).generate_db_context(
        tables, resolve_inverse_relationships(tables)
    )


def _model(request: GenerationRequest, name: str) -> str:
    tables = request.valid_tables()
    target = next(t for t in tables if t.name == name)
    return TemplateGenerator(request).generate_model(target, resolve_inverse_relationships(tables))


def _compact(code: str) -> List[str]:
    return [line.strip() for line in code.splitlines()]


# ===========================================================================
# Entity classes
# ===========================================================================


class TestModelGeneration:
    def test_header_and_namespace(self, library_request: GenerationRequest) -> None:
        code = _model(library_request, "Book")
        assert code.splitlines()[0] == HEADER
        assert "namespace Library.Entities;" in code
        assert "public class Book" in code
        assert code.endswith("}\n")

    def test_scalar_properties(self, library_request: GenerationRequest) -> None:
        lines = _compact(_model(library_request, "Book"))
        assert "public int Id { get; set; }" in lines
        assert "public string Title { get; set; }" in lines
        assert "public int? Stock { get; set; }" in lines
        assert "public int AuthorId { get; set; }" in lines

    def test_reference_navigation(self, library_request: GenerationRequest) -> None:
        lines = _compact(_model(library_request, "Book"))
        assert "public virtual Author? Author { get; set; }" in lines

    def test_inverse_collection(self, library_request: GenerationRequest) -> None:
        lines = _compact(_model(library_request, "Author"))
        assert "public virtual ICollection<Book> Books { get; set; } = new List<Book>();" in lines

    def test_member_order(self, library_request: GenerationRequest) -> None:
        code = _model(library_request, "Book")
        assert code.index("AuthorId {") < code.index("Author? Author")

    def test_annotations_present_by_default(self, library_request: GenerationRequest) -> None:
        lines = _compact(_model(library_request, "Book"))
        assert "[Key]" in lines
        assert "[MaxLength(3)]" in lines
        assert "using System.ComponentModel.DataAnnotations;" in lines

    def test_no_annotations_in_fluent_only(self, author_table, book_table) -> None:
        request = build_request([author_table, book_table], configuration_style="FluentApiOnly")
        code = _model(request, "Book")
        assert "[Key]" not in code
        assert "DataAnnotations" not in code

    def test_skipped_inverse_collection_placeholder(self, book_table) -> None:
        author = table("Author", pk(), prop("books", "integer32"))
        request = build_request([author, book_table])
        lines = _compact(_model(request, "Author"))
        assert (
            "// Inverse navigation 'Books' from Book.author_id skipped: "
            "name conflicts with an existing member."
        ) in lines
        assert not any(line.startswith("public virtual ICollection") for line in lines)

    def test_plural_table_names(self) -> None:
        products = table("Products", pk())
        orders = table("Orders", pk("order_id"), fk("product_id", "Products"))
        request = build_request([products, orders])
        lines = _compact(_model(request, "Products"))
        assert (
            "public virtual ICollection<Orders> Orderses { get; set; } = new List<Orders>();"
        ) in lines
        assert ".WithMany(p => p.Orderses)" in _compact(_context(request))

    def test_collection_named_like_the_class_is_skipped(self) -> None:
        books = table("Books", pk())
        book = table("Book", pk(), fk("series_id", "Books"))
        request = build_request([books, book])
        lines = _compact(_model(request, "Books"))
        assert not any(line.startswith("public virtual ICollection") for line in lines)
        assert ".WithMany()" in _compact(_context(request))

    def test_soft_delete_flag_added(self, author_table, book_table) -> None:
        request = build_request([author_table, book_table], enable_soft_delete_globally=True)
        lines = _compact(_model(request, "Author"))
        assert lines[-2] == "public bool IsDeleted { get; set; }"

    def test_declared_soft_delete_flag_not_duplicated(self) -> None:
        t = table("Note", pk(), prop("is_deleted", "boolean"), enable_soft_delete=True)
        code = _model(build_request([t]), "Note")
        assert code.count("IsDeleted {") == 1

    def test_soft_delete_disabled_per_table(self, author_table) -> None:
        t = table("Log", pk(), enable_soft_delete=False)
        request = build_request([author_table, t], enable_soft_delete_globally=True)
        assert "IsDeleted" not in _model(request, "Log")


# ===========================================================================
# DbContext
# ===========================================================================


class TestDbContextGeneration:
    def test_class_and_constructor(self, library_request: GenerationRequest) -> None:
        code = _context(library_request)
        assert "namespace Library.Data;" in code
        assert "public class LibraryDbContext : DbContext" in code
        assert "public LibraryDbContext(DbContextOptions<LibraryDbContext> options)" in code
        assert "using Library.Entities;" in code

    def test_db_sets(self, library_request: GenerationRequest) -> None:
        lines = _compact(_context(library_request))
        assert "public DbSet<Author> Authors { get; set; } = null!;" in lines
        assert "public DbSet<Book> Books { get; set; } = null!;" in lines

    def test_keys(self) -> None:
        line = table("order_line", pk("order_id"), pk("product_id"))
        lines = _compact(_context(build_request([table("Author", pk()), line])))
        assert "entity.HasKey(e => e.Id);" in lines
        assert "entity.HasKey(e => new { e.OrderId, e.ProductId });" in lines

    def test_association_chain(self, library_request: GenerationRequest) -> None:
        lines = _compact(_context(library_request))
        start = lines.index("entity.HasOne(e => e.Author)")
        assert lines[start + 1 : start + 4] == [
            ".WithMany(p => p.Books)",
            ".HasForeignKey(e => e.AuthorId)",
            ".OnDelete(DeleteBehavior.Cascade);",
        ]

    def test_nullable_key_defaults_to_client_set_null(self, author_table) -> None:
        book = table("Book", pk(), fk("author_id", "Author", "author", is_nullable=True))
        lines = _compact(_context(build_request([author_table, book])))
        assert ".OnDelete(DeleteBehavior.ClientSetNull);" in lines

    def test_explicit_delete_behavior_and_constraint_name(self, author_table) -> None:
        book = table(
            "Book",
            pk(),
            fk(
                "author_id",
                "Author",
                "author",
                delete_behavior="restrict",
                custom_fk_constraint_name="FK_Book_Author",
            ),
        )
        lines = _compact(_context(build_request([author_table, book])))
        assert ".OnDelete(DeleteBehavior.Restrict)" in lines
        assert '.HasConstraintName("FK_Book_Author");' in lines

    def test_unknown_delete_behavior_falls_back(self, author_table) -> None:
        book = table("Book", pk(), fk("author_id", "Author", "author", delete_behavior="Explode"))
        lines = _compact(_context(build_request([author_table, book])))
        assert ".OnDelete(DeleteBehavior.Cascade);" in lines

    def test_association_without_navigation(self, author_table) -> None:
        book = table("Book", pk(), fk("author_id", "Author"))
        lines = _compact(_context(build_request([author_table, book])))
        assert "entity.HasOne<Author>()" in lines
        assert ".WithMany(p => p.Books)" in lines

    def test_dangling_reference_uses_bare_with_many(self) -> None:
        book = table("Book", pk(), fk("publisher_id", "Publisher", "publisher"))
        lines = _compact(_context(build_request([book])))
        assert "entity.HasOne(e => e.Publisher)" in lines
        assert ".WithMany()" in lines

    def test_principal_key_only_when_not_primary_key(self, author_table) -> None:
        by_key = table("Book", pk(), fk("author_id", "Author", referenced_property_name="id"))
        assert ".HasPrincipalKey" not in _context(build_request([author_table, by_key]))

        by_alt = table("Book", pk(), fk("author_code", "Author", referenced_property_name="code"))
        lines = _compact(_context(build_request([author_table, by_alt])))
        assert ".HasPrincipalKey(p => p.Code)" in lines

    def test_query_filter(self, author_table, book_table) -> None:
        request = build_request([author_table, book_table], enable_soft_delete_globally=True)
        assert _compact(_context(request)).count("entity.HasQueryFilter(e => !e.IsDeleted);") == 2

    def test_query_filter_uses_declared_member(self) -> None:
        t = table("Note", pk(), prop("isDeleted", "boolean"), enable_soft_delete=True)
        lines = _compact(_context(build_request([t])))
        assert "entity.HasQueryFilter(e => !e.Isdeleted);" in lines

    def test_fluent_lines_follow_style(self, author_table, book_table) -> None:
        combined = _context(build_request([author_table, book_table]))
        assert "entity.Property(e => e.Title).HasMaxLength(3).IsRequired();" in combined

        annotations_only = _context(
            build_request([author_table, book_table], configuration_style="AnnotationsOnly")
        )
        assert "entity.Property(" not in annotations_only
        assert "entity.HasOne(e => e.Author)" in annotations_only


# ===========================================================================
# Repositories
# ===========================================================================


class TestRepositoryGeneration:
    def test_generic_interface(self, library_request: GenerationRequest) -> None:
        code = TemplateGenerator(library_request).generate_generic_repository_interface()
        assert "namespace Library.Repositories.Interfaces;" in code
        assert "public interface IRepository<TEntity> where TEntity : class" in code
        for member in (
            "GetByIdAsync",
            "GetAllAsync",
            "FindAsync",
            "AddAsync",
            "AddRangeAsync",
            "void Update(",
            "void Remove(",
            "void RemoveRange(",
            "CountAsync",
            "ExistsAsync",
        ):
            assert member in code

    def test_generic_implementation(self, library_request: GenerationRequest) -> None:
        code = TemplateGenerator(library_request).generate_generic_repository()
        assert (
            "public class Repository<TEntity> : IRepository<TEntity> where TEntity : class"
        ) in code
        assert "protected readonly LibraryDbContext Context;" in code
        assert "DbSet.IgnoreQueryFilters()" in code
        assert "SoftDeleteProperty.SetValue(entity, true);" in code
        assert "BindingFlags.IgnoreCase" in code

    def test_specific_pair(self, library_request: GenerationRequest, book_table) -> None:
        templates = TemplateGenerator(library_request)
        iface = templates.generate_specific_repository_interface(book_table)
        impl = templates.generate_specific_repository(book_table)
        assert "public interface IBookRepository : IRepository<Book>" in iface
        assert "public class BookRepository : Repository<Book>, IBookRepository" in impl
        assert "public BookRepository(LibraryDbContext context)" in impl

    def test_custom_naming(self, author_table, book_table) -> None:
        request = build_request(
            [author_table, book_table],
            naming_conventions=NamingConventionOptions(
                repository_interface_prefix="I",
                repository_class_suffix="Store",
                service_interface_prefix="Abstract",
                service_class_suffix="Manager",
            ),
        )
        templates = TemplateGenerator(request)
        assert templates.repository_interface_name(book_table) == "IBookStore"
        assert templates.repository_class_name(book_table) == "BookStore"
        assert templates.service_interface_name(book_table) == "AbstractBookManager"
        assert templates.service_class_name(book_table) == "BookManager"
        assert "public class Store<TEntity> : IStore<TEntity>" in (
            templates.generate_generic_repository()
        )


# ===========================================================================
# Services
# ===========================================================================


class TestServiceGeneration:
    def test_interface_async_only(self, library_request: GenerationRequest, book_table) -> None:
        lines = _compact(TemplateGenerator(library_request).generate_service_interface(book_table))
        assert "public interface IBookService" in lines
        assert (
            "Task<Book?> GetByIdAsync(int id, bool includeSoftDeleted = false, "
            "CancellationToken cancellationToken = default);"
        ) in lines
        assert not any(line.startswith("Book? GetById(") for line in lines)

    def test_blocking_mirrors(self, author_table, book_table) -> None:
        request = build_request([author_table, book_table], async_service_only=False)
        templates = TemplateGenerator(request)
        iface = _compact(templates.generate_service_interface(book_table))
        assert "Book? GetById(int id, bool includeSoftDeleted = false);" in iface
        assert "void Delete(int id, bool hardDelete = false);" in iface
        service = templates.generate_service(book_table)
        assert "return GetByIdAsync(id, includeSoftDeleted).GetAwaiter().GetResult();" in service
        assert "DeleteAsync(id, hardDelete).GetAwaiter().GetResult();" in service

    def test_service_implements_interface(self, library_request, book_table) -> None:
        code = TemplateGenerator(library_request).generate_service(book_table)
        assert "public class BookService : IBookService" in code
        assert "private readonly IBookRepository _repository;" in code
        assert "_context.Entry(existing).CurrentValues.SetValues(entity);" in code
        assert (
            "throw new KeyNotFoundException($\"Book with key '{id}' was not found.\");"
        ) in code

    def test_service_without_interfaces(self, author_table, book_table) -> None:
        request = build_request([author_table, book_table], generate_service_interfaces=False)
        lines = _compact(TemplateGenerator(request).generate_service(book_table))
        assert "public class BookService" in lines
        assert "Library.Services.Interfaces" not in " ".join(lines)

    def test_composite_key_service(self) -> None:
        line = table("order_line", pk("order_id"), pk("product_id"))
        code = TemplateGenerator(build_request([line])).generate_service(line)
        assert "UpdateAsync(object[] id, OrderLine entity" in code
        assert "string.Join(\", \", id)" in code


# ===========================================================================
# Test scaffolds and DI
# ===========================================================================


class TestScaffoldedTests:
    def test_repository_tests(self, library_request, book_table) -> None:
        code = TemplateGenerator(library_request).generate_repository_tests(book_table)
        lines = _compact(code)
        assert "namespace Library.Tests.Repositories;" in lines
        assert "public class BookRepositoryTests" in lines
        assert "public async Task AddAsync_ThenGetAllAsync_ReturnsEntity()" in lines
        assert 'Title = "sam",' in lines
        assert "AuthorId = 1," in lines
        assert not any(line.startswith("Id =") for line in lines)
        assert not any(line.startswith("Stock =") for line in lines)

    def test_service_tests(self, library_request, book_table) -> None:
        code = TemplateGenerator(library_request).generate_service_tests(book_table)
        assert "using Moq;" in code
        assert "var repository = new Mock<IBookRepository>();" in code
        assert "public async Task CreateAsync_AddsEntityAndSavesOnce()" in code


class TestDiExtensions:
    def test_registrations(self, library_request: GenerationRequest) -> None:
        templates = TemplateGenerator(library_request)
        lines = _compact(templates.generate_di_extensions(library_request.valid_tables()))
        assert "services.AddDbContext<LibraryDbContext>(configureDbContext);" in lines
        assert "services.AddScoped(typeof(IRepository<>), typeof(Repository<>));" in lines
        assert "services.AddScoped<IBookRepository, BookRepository>();" in lines
        assert "services.AddScoped<IAuthorService, AuthorService>();" in lines
        assert "return services;" in lines

    def test_registrations_without_service_interfaces(self, author_table) -> None:
        request = build_request([author_table], generate_service_interfaces=False)
        lines = _compact(TemplateGenerator(request).generate_di_extensions([author_table]))
        assert "services.AddScoped<AuthorService>();" in lines

    def test_registrations_without_services(self, author_table) -> None:
        request = build_request([author_table], generate_services=False)
        code = TemplateGenerator(request).generate_di_extensions([author_table])
        assert "AuthorService" not in code
        assert "Library.Services" not in code


# ===========================================================================
# Aggregates
# ===========================================================================


class TestGenerateAll:
    def test_default_per_table_files(self, library_request, book_table) -> None:
        files = TemplateGenerator(library_request).generate_all_for_table(
            book_table, resolve_inverse_relationships(library_request.valid_tables())
        )
        assert list(files) == [
            "Entities/Book.cs",
            "Repositories/Interfaces/IBookRepository.cs",
            "Repositories/Implementations/BookRepository.cs",
            "Services/Interfaces/IBookService.cs",
            "Services/Implementations/BookService.cs",
        ]

    @pytest.mark.parametrize(
        "options, expected",
        [
            ({"generate_services": False}, 3),
            ({"generate_service_interfaces": False}, 4),
            ({"generate_unit_tests": True}, 7),
            ({"generate_unit_tests": True, "generate_services": False}, 4),
        ],
    )
    def test_toggles(self, author_table, book_table, options, expected) -> None:
        request = build_request([author_table, book_table], **options)
        files = TemplateGenerator(request).generate_all_for_table(
            book_table, resolve_inverse_relationships(request.valid_tables())
        )
        assert len(files) == expected

    def test_shared_files(self, library_request: GenerationRequest) -> None:
        tables = library_request.valid_tables()
        files = TemplateGenerator(library_request).generate_shared(
            tables, resolve_inverse_relationships(tables)
        )
        assert list(files) == [
            "Data/LibraryDbContext.cs",
            "Repositories/Interfaces/IRepository.cs",
            "Repositories/Implementations/Repository.cs",
            "Extensions/ServiceCollectionExtensions.cs",
        ]

    def test_shared_files_without_di(self, author_table) -> None:
        request = build_request([author_table], generate_di_extensions=False)
        files = TemplateGenerator(request).generate_shared([author_table], {})
        assert "Extensions/ServiceCollectionExtensions.cs" not in files

    def test_deterministic(self, shop_request: GenerationRequest) -> None:
        tables = shop_request.valid_tables()
        rel_map = resolve_inverse_relationships(tables)
        first = TemplateGenerator(shop_request).generate_db_context(tables, rel_map)
        second = TemplateGenerator(shop_request).generate_db_context(tables, rel_map)
        assert first == second

    def test_every_file_has_header(self, shop_request: GenerationRequest) -> None:
        tables = shop_request.valid_tables()
        rel_map = resolve_inverse_relationships(tables)
        templates = TemplateGenerator(shop_request)
        for t in tables:
            for content in templates.generate_all_for_table(t, rel_map).values():
                assert content.startswith(HEADER)
