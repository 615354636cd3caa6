import pytest

from clipstack.entry import Entry
from clipstack.session import SelectionSession, SessionState


@pytest.fixture
def entries():
    return [Entry.plain("hello world"), Entry.plain("goodbye"), Entry.plain("say hello")]


def test_opens_with_full_list_and_first_row_highlighted(entries):
    session = SelectionSession(entries)
    assert session.state is SessionState.OPEN
    assert session.visible == entries
    assert session.highlight == 0


def test_empty_snapshot_has_no_highlight():
    session = SelectionSession([])
    assert session.highlight is None
    assert session.confirm() is None
    assert session.press_digit(1) is None
    assert not session.closed


def test_filter_keeps_matches_in_original_order(entries):
    session = SelectionSession(entries)
    session.set_filter("hello")
    assert session.state is SessionState.FILTERING
    assert [e.text for e in session.visible] == ["hello world", "say hello"]


def test_filter_is_case_insensitive(entries):
    session = SelectionSession(entries)
    session.set_filter("GOOD")
    assert [e.text for e in session.visible] == ["goodbye"]


def test_filter_resets_highlight(entries):
    session = SelectionSession(entries)
    session.move_down()
    session.move_down()
    assert session.highlight == 2
    session.set_filter("o")
    assert session.highlight == 0
    session.set_filter("")
    assert session.visible == entries


def test_empty_filter_result_disables_selection(entries):
    session = SelectionSession(entries)
    session.set_filter("zzz")
    assert session.visible == []
    assert session.highlight is None
    assert session.confirm() is None
    assert session.press_digit(1) is None
    session.move_down()
    assert session.highlight is None
    assert not session.closed


def test_confirm_maps_filtered_row_to_original_index(entries):
    session = SelectionSession(entries)
    session.set_filter("say")
    assert session.confirm() == 2
    assert session.state is SessionState.SELECTED
    assert session.selected_index == 2


def test_navigation_clamps_without_wrapping(entries):
    session = SelectionSession(entries)
    session.move_up()
    assert session.highlight == 0
    for _ in range(5):
        session.move_down()
    assert session.highlight == 2
    assert session.confirm() == 2


def test_digits_pick_positions_in_the_filtered_view(entries):
    session = SelectionSession(entries)
    session.set_filter("hello")
    assert session.press_digit(2) == 2


def test_digit_outside_view_or_range_is_ignored(entries):
    session = SelectionSession(entries)
    assert session.press_digit(0) is None
    assert session.press_digit(4) is None
    assert session.press_digit(10) is None
    assert not session.closed


def test_tenth_row_has_no_digit_shortcut():
    many = [Entry.plain(f"item {n}") for n in range(12)]
    session = SelectionSession(many)
    assert session.press_digit(10) is None
    assert session.press_digit(9) == 8


def test_activate_row_as_double_click(entries):
    session = SelectionSession(entries)
    session.set_filter("o")
    assert session.activate(1) == 1
    assert session.closed


@pytest.mark.parametrize("close", ["cancel", "focus_lost"])
def test_cancel_paths(entries, close):
    finished = []
    session = SelectionSession(entries, on_finish=finished.append)
    getattr(session, close)()
    assert session.state is SessionState.CANCELLED
    assert session.selected_index is None
    assert finished == [None]


def test_closed_session_ignores_input(entries):
    finished = []
    session = SelectionSession(entries, on_finish=finished.append)
    session.press_digit(1)
    session.cancel()
    session.set_filter("say")
    session.move_down()
    assert session.confirm() is None
    assert session.state is SessionState.SELECTED
    assert session.selected_index == 0
    assert finished == [0]


def test_snapshot_is_isolated_from_later_changes(entries):
    session = SelectionSession(entries)
    entries.insert(0, Entry.plain("captured later"))
    assert len(session.visible) == 3
    assert session.confirm() == 0
    assert session.entries[0].text == "hello world"


def test_resources_released_once_on_close(entries):
    released = []
    session = SelectionSession(entries)
    session.attach(lambda: released.append("keys"))
    session.attach(lambda: released.append("focus"))
    session.cancel()
    session.cancel()
    assert released == ["focus", "keys"]


def test_resources_released_on_abnormal_exit(entries):
    released = []
    with pytest.raises(RuntimeError):
        with SelectionSession(entries) as session:
            session.attach(lambda: released.append(True))
            raise RuntimeError("overlay crashed")
    assert released == [True]
    assert session.state is SessionState.CANCELLED


def test_with_block_keeps_selection(entries):
    with SelectionSession(entries) as session:
        session.press_digit(3)
    assert session.selected_index == 2


def test_attach_after_close_releases_immediately(entries):
    released = []
    session = SelectionSession(entries)
    session.cancel()
    session.attach(lambda: released.append(True))
    assert released == [True]


def test_searches_file_paths_and_images():
    files = Entry.files(["/home/me/Report.pdf"])
    image = Entry.image(b"png")
    session = SelectionSession([files, image])
    session.set_filter("report")
    assert session.visible == [files]
    session.set_filter("image copied")
    assert session.visible == [image]
