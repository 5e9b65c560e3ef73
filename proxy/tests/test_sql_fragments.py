from sqlalchemy.sql.elements import TextClause

from proxy_api.query.sql import (
    Fragment,
    join_fragments,
    placeholder_list,
    renumber_placeholders,
    to_text_clause,
)


def test_renumber_shifts_multi_digit_placeholders_independently() -> None:
    sql = "a = $1 AND b = $10 AND c = $2"

    assert renumber_placeholders(sql, 3) == "a = $4 AND b = $13 AND c = $5"


def test_renumber_with_zero_offset_is_identity() -> None:
    sql = "x = $1"

    assert renumber_placeholders(sql, 0) is sql


def test_join_fragments_offsets_each_fragment_by_preceding_params() -> None:
    joined = join_fragments(
        [
            Fragment("a IN ($1, $2)", ("x", "y")),
            Fragment("b = $1", (3,)),
            Fragment("c IS NOT NULL"),
            Fragment("d = $1 OR e = $2", ("p", "q")),
        ],
        " AND ",
    )

    assert joined.sql == "a IN ($1, $2) AND b = $3 AND c IS NOT NULL AND d = $4 OR e = $5"
    assert joined.params == ("x", "y", 3, "p", "q")


def test_fragment_shifted_keeps_params() -> None:
    fragment = Fragment("LIMIT $1 OFFSET $2", (10, 20)).shifted(9)

    assert fragment.sql == "LIMIT $10 OFFSET $11"
    assert fragment.params == (10, 20)


def test_placeholder_list() -> None:
    assert placeholder_list(4, 3) == "$4, $5, $6"


def test_to_text_clause_converts_to_named_binds() -> None:
    statement, binds = to_text_clause(Fragment("SELECT $1, $10", tuple(range(1, 11))))

    assert isinstance(statement, TextClause)
    assert str(statement) == "SELECT :p1, :p10"
    assert binds["p1"] == 1
    assert binds["p10"] == 10
    assert len(binds) == 10


def test_to_text_clause_types_datetime_columns() -> None:
    statement, binds = to_text_clause(
        Fragment("SELECT published_at FROM documents WHERE name = $1", ("alpha",)),
        datetime_columns=("published_at",),
    )

    assert binds == {"p1": "alpha"}
    assert "published_at" in statement.selected_columns
