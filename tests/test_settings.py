import pytest

from trunkctl import cfgformat
from trunkctl.logger import Logger
from trunkctl.settings import ConfigError, Settings


@pytest.fixture
def logger(tmp_path):
    log = Logger(tmp_path / "log" / "test.log")
    yield log
    log.close()


@pytest.fixture
def config_dir(tmp_path):
    return tmp_path / "conf" / "trunkctl"


def write_config(config_dir, text):
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "trunkctl.cfg").write_text(text, encoding="utf-8")


def test_setup_creates_generated_file(logger, config_dir):
    settings = Settings(logger, config_dir)
    assert settings.config_path == config_dir / "trunkctl.cfg"
    assert settings.config_path.read_text(encoding="utf-8") == "// Automatically generated\n"


def test_setup_migrates_old_file(logger, config_dir):
    config_dir.parent.mkdir(parents=True)
    old = config_dir.parent / "trunkctl.cfg"
    old.write_text("channel_number = 3;\n", encoding="utf-8")
    settings = Settings(logger, config_dir)
    assert not old.exists()
    settings.read_config()
    assert settings.channel_number == 3


def test_constructor_defaults(logger, config_dir):
    settings = Settings(logger, config_dir)
    assert settings.freq_separation == 12500
    assert settings.channel_number == 1
    assert settings.service_ids == {"help": 1, "signal_report": 2, "location": 1048677}


def test_read_empty_config_uses_read_defaults(logger, config_dir):
    settings = Settings(logger, config_dir)
    settings.read_config()
    assert settings.channel_number == 4
    assert settings.freq_separation == 25000
    assert settings.freq_base == 430000000
    assert settings.system_announcement_message == "DMR tier III trunked radio site"
    assert settings.service_ids == {
        "help": 1000001, "signal_report": 1000003, "location": 1048677, "dgna": 1000002,
    }
    assert settings.call_priorities == {112: 3, 226: 2, 9: 1}
    assert settings.talkgroup_routing_table == {}


def test_read_values(logger, config_dir):
    write_config(config_dir, """
        mmdvm_listen_port = 50000;
        udp_local_address = "10.0.0.1";
        talkgroup_routing = ( { tg_id = 9; gateway_id = 2; }, { tg_id = 226; } );
        slot_rewrite = ( { tg_id = 9; slot_no = 1; } );
        logical_physical_channels = (
            { channel_id = 1; logical_channel = 5; tx_freq = 433000000L;
              rx_freq = 434000000L; colour_code = 1; },
            { channel_id = 2; logical_channel = 6; }
        );
        auth_keys = ( { id = 1234; key = "placeholder"; } );
    """)
    settings = Settings(logger, config_dir)
    settings.read_config()
    assert settings.mmdvm_listen_port == 50000
    assert settings.udp_local_address == "10.0.0.1"
    assert settings.talkgroup_routing_table == {9: 2}
    assert settings.slot_rewrite_table == {9: 1}
    assert settings.logical_physical_channels == [{
        "channel_id": 1, "logical_channel": 5, "tx_freq": 433000000,
        "rx_freq": 434000000, "colour_code": 1,
    }]
    assert settings.auth_keys == {1234: "placeholder"}


def test_service_ids_merge_with_defaults(logger, config_dir):
    write_config(config_dir, 'service_ids = ( { service_name = "dgna"; id = 77; } );\n')
    settings = Settings(logger, config_dir)
    settings.read_config()
    assert settings.service_ids["dgna"] == 77
    assert settings.service_ids["location"] == 1048677


@pytest.mark.parametrize("value", [0, 8])
def test_invalid_channel_number(logger, config_dir, value):
    write_config(config_dir, f"channel_number = {value};\n")
    settings = Settings(logger, config_dir)
    with pytest.raises(ConfigError, match="Number of channels"):
        settings.read_config()


def test_invalid_gateway_number(logger, config_dir):
    write_config(config_dir, "gateway_number = 31;\n")
    settings = Settings(logger, config_dir)
    with pytest.raises(ConfigError, match="Number of gateways"):
        settings.read_config()


def test_parse_error_is_logged(logger, config_dir):
    lines = []
    logger.add_listener(lines.append)
    write_config(config_dir, "channel_number = ;\n")
    settings = Settings(logger, config_dir)
    with pytest.raises(ConfigError, match="Configuration parse error"):
        settings.read_config()
    assert len(lines) == 1
    assert "[Fatal]" in lines[0]


def test_wrong_type_raises(logger, config_dir):
    write_config(config_dir, 'control_port = "abc";\n')
    settings = Settings(logger, config_dir)
    with pytest.raises(ConfigError):
        settings.read_config()


def test_save_and_read_round_trip(logger, config_dir):
    settings = Settings(logger, config_dir)
    settings.channel_number = 3
    settings.system_announcement_message = 'Site "A"'
    settings.talkgroup_routing_table = {226: 1, 9: 2}
    settings.slot_rewrite_table = {9: 2}
    settings.logical_physical_channels = [{
        "channel_id": 1, "logical_channel": 2, "tx_freq": 433000000,
        "rx_freq": 434000000, "colour_code": 1,
    }]
    settings.adjacent_sites = [{
        "system_id": 4, "logical_channel": 3, "tx_freq": 435000000,
        "rx_freq": 436000000, "colour_code": 2,
    }]
    settings.call_diverts = {100: 200}
    settings.auth_keys = {5: "secret"}
    settings.save_config()

    loaded = Settings(logger, config_dir)
    loaded.read_config()
    assert loaded.channel_number == 3
    assert loaded.system_announcement_message == 'Site "A"'
    assert loaded.talkgroup_routing_table == settings.talkgroup_routing_table
    assert loaded.slot_rewrite_table == settings.slot_rewrite_table
    assert loaded.logical_physical_channels == settings.logical_physical_channels
    assert loaded.adjacent_sites == settings.adjacent_sites
    assert loaded.service_ids == settings.service_ids
    assert loaded.call_diverts == settings.call_diverts
    assert loaded.auth_keys == settings.auth_keys
    assert loaded.freq_separation == settings.freq_separation


def test_save_orders_tables_by_key(logger, config_dir):
    settings = Settings(logger, config_dir)
    settings.talkgroup_routing_table = {300: 1, 5: 2, 40: 3}
    settings.save_config()
    data = cfgformat.load(settings.config_path)
    ids = [entry["tg_id"] for entry in data["talkgroup_routing"]]
    assert ids == sorted(ids)
    names = [entry["service_name"] for entry in data["service_ids"]]
    assert names == sorted(names)


def test_save_write_failure(logger, config_dir):
    settings = Settings(logger, config_dir)
    settings.config_path.unlink()
    settings.config_path.mkdir()
    with pytest.raises(ConfigError, match="I/O error while writing"):
        settings.save_config()