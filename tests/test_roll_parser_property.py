from hypothesis import given
from hypothesis import strategies as st

from Rollkeeper.rolls import parse, render_message
from Rollkeeper.rolls.types import DiceRollInstance, DiceRollRequest

instances = st.builds(
    DiceRollInstance,
    number_of_dice=st.integers(min_value=1, max_value=100),
    size_of_dice=st.integers(min_value=1, max_value=1000),
    modifier=st.integers(min_value=-500, max_value=500),
    dice_rolls=st.lists(st.integers(min_value=0, max_value=1000), min_size=1, max_size=12).map(
        tuple
    ),
    total=st.integers(min_value=0, max_value=10**6),
)


@given(st.lists(instances, min_size=1, max_size=6))
def test_rendered_tables_parse_back(rolls: list[DiceRollInstance]):
    request = parse(render_message(rolls))
    assert request == DiceRollRequest(rolls=tuple(rolls))


@given(instances)
def test_modifier_never_lands_in_rolls(roll: DiceRollInstance):
    request = parse(render_message([roll]))
    assert request is not None
    (parsed,) = request.rolls
    assert len(parsed.dice_rolls) == len(roll.dice_rolls)


@given(st.lists(instances, min_size=2, max_size=5), st.data())
def test_one_broken_table_rejects_the_message(rolls: list[DiceRollInstance], data):
    frames = render_message(rolls)
    # Drop one divider so that table's data row no longer matches.
    idx = data.draw(st.integers(min_value=0, max_value=len(rolls) - 1))
    pieces = frames.split("``````")
    head, sep, tail = pieces[idx].rpartition("│")
    assert sep
    pieces[idx] = head + " " + tail
    assert parse("``````".join(pieces)) is None


@given(st.text(alphabet=st.characters(exclude_characters="`"), max_size=60))
def test_text_without_fences_never_parses(s: str):
    assert parse(s) is None
