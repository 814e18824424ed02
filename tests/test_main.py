from chipeight.cpu import Chip8, FONT_START
from chipeight.main import main, run


class FakeScreen:
    def __init__(self, polls_before_quit):
        self.remaining = polls_before_quit
        self.polled = []
        self.frames = []

    def poll(self, keys):
        self.polled.append(keys)
        self.remaining -= 1
        return self.remaining > 0

    def draw(self, display):
        self.frames.append(bytes(display))


def test_run_stops_when_poll_reports_quit():
    cpu = Chip8()
    cpu.load_bytes(bytes([0x60, 0x05, 0x12, 0x02]))
    screen = FakeScreen(3)
    assert run(cpu, screen, 0) == 3
    assert cpu.v[0] == 5
    assert cpu.pc == 0x202
    assert screen.frames == []


def test_run_passes_cpu_keys_to_poll():
    cpu = Chip8()
    cpu.load_bytes(bytes([0x12, 0x00]))
    screen = FakeScreen(2)
    run(cpu, screen, 0)
    assert all(keys is cpu.keys for keys in screen.polled)


def test_run_draws_after_draw_instruction():
    cpu = Chip8()
    addr = FONT_START
    cpu.load_bytes(bytes([0xA0 | (addr >> 8), addr & 0xFF, 0xD0, 0x05, 0x12, 0x04]))
    screen = FakeScreen(4)
    run(cpu, screen, 0)
    assert len(screen.frames) == 1
    assert screen.frames[0] == bytes(cpu.display)
    assert sum(screen.frames[0]) > 0


def test_main_without_rom_prints_usage(capsys):
    assert main([]) == 1
    assert "Please provide a rom file." in capsys.readouterr().out


def test_main_with_too_many_arguments(capsys):
    assert main(["a.ch8", "b.ch8"]) == 1
    assert "Please provide a rom file." in capsys.readouterr().out


def test_main_with_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "absent.ch8")]) == 1
    assert "Cannot load ROM" in capsys.readouterr().err


def test_main_with_oversized_rom(tmp_path):
    rom = tmp_path / "big.ch8"
    rom.write_bytes(bytes(5000))
    assert main([str(rom)]) == 1