from types import SimpleNamespace

from trunkctl.rewrite import DataType, DMRFrame, DMRRewrite, FLCO


def make_rewrite(table=None, registered=None):
    settings = SimpleNamespace(slot_rewrite_table=dict(table or {}))
    return DMRRewrite(settings, registered if registered is not None else [])


def test_slot_table_applies():
    rewrite = make_rewrite({91: 1, 9: 2})
    frame = DMRFrame(slot_no=2, dst_id=91)
    assert rewrite.rewrite_slot(frame) is True
    assert frame.slot_no == 1


def test_no_rule_leaves_frame():
    rewrite = make_rewrite({91: 1})
    frame = DMRFrame(slot_no=1, dst_id=5)
    assert rewrite.rewrite_slot(frame) is False
    assert frame.slot_no == 1


def test_private_call_goes_to_slot_two():
    rewrite = make_rewrite({77: 1})
    frame = DMRFrame(slot_no=1, dst_id=77, flco=FLCO.USER_USER, stream_id=10)
    assert rewrite.rewrite_slot(frame) is True
    assert frame.slot_no == 2


def test_private_stream_remembered_until_terminator():
    rewrite = make_rewrite()
    rewrite.rewrite_slot(DMRFrame(flco=FLCO.USER_USER, stream_id=10, data_type=DataType.VOICE_LC_HEADER))

    follow = DMRFrame(slot_no=1, flco=FLCO.GROUP, stream_id=10)
    assert rewrite.rewrite_slot(follow) is True
    assert follow.slot_no == 2

    end = DMRFrame(slot_no=1, flco=FLCO.USER_USER, stream_id=10,
                   data_type=DataType.TERMINATOR_WITH_LC)
    assert rewrite.rewrite_slot(end) is True
    assert end.slot_no == 2

    after = DMRFrame(slot_no=1, flco=FLCO.GROUP, stream_id=10)
    assert rewrite.rewrite_slot(after) is False
    assert after.slot_no == 1


def test_group_terminator_on_private_stream_uses_table():
    rewrite = make_rewrite({50: 1})
    rewrite.rewrite_slot(DMRFrame(flco=FLCO.USER_USER, stream_id=3))
    term = DMRFrame(slot_no=2, dst_id=50, flco=FLCO.GROUP, stream_id=3,
                    data_type=DataType.TERMINATOR_WITH_LC)
    assert rewrite.rewrite_slot(term) is True
    assert term.slot_no == 1


def test_rewrite_source_registered():
    rewrite = make_rewrite(registered=[100, 200])
    frame = DMRFrame(src_id=200)
    assert rewrite.rewrite_source(frame) is True
    assert frame.src_id == 1


def test_rewrite_source_unregistered():
    rewrite = make_rewrite(registered=[100])
    frame = DMRFrame(src_id=300)
    assert rewrite.rewrite_source(frame) is False
    assert frame.src_id == 300


def test_rewrite_source_sees_list_changes():
    registered = []
    rewrite = make_rewrite(registered=registered)
    frame = DMRFrame(src_id=7)
    assert rewrite.rewrite_source(frame) is False
    registered.append(7)
    assert rewrite.rewrite_source(frame) is True
    assert frame.src_id == 1


def test_frame_defaults():
    frame = DMRFrame()
    assert len(frame.data) == 33
    assert frame.control is False and frame.dummy is False