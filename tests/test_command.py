"""Tests for the structured ffmpeg command builder."""

import pytest

from mp3joiner.command import FFmpegCommand


class TestFFmpegCommand:
    """Test cases for FFmpegCommand."""

    def test_minimal_command(self):
        """Test a single input with a single output."""
        command = FFmpegCommand()
        assert command.add_input("in.mp3") == 0
        command.set_output("out.mp3")

        assert command.to_args() == ["ffmpeg", "-hide_banner", "-i", "in.mp3", "-y", "out.mp3"]

    def test_input_options_precede_their_input(self):
        """Test that per-input options are rendered right before -i."""
        command = FFmpegCommand()
        command.add_input("a.mp3", ss=1.5, t=2.0)
        command.add_input("b.mp3", ss=0.0, t=3.25)
        command.set_output("out.mp3")

        assert command.to_args() == [
            "ffmpeg", "-hide_banner",
            "-ss", "1.5", "-t", "2", "-i", "a.mp3",
            "-ss", "0", "-t", "3.25", "-i", "b.mp3",
            "-y", "out.mp3"
        ]

    def test_input_indices(self):
        """Test that add_input returns consecutive indices."""
        command = FFmpegCommand()
        assert [command.add_input(name) for name in ("a", "b", "c")] == [0, 1, 2]

    def test_full_ordering(self):
        """Test the order of filter graph, maps and output options."""
        command = FFmpegCommand("/opt/ffmpeg")
        command.add_input("a.mp3")
        meta = command.add_input("meta.txt")
        command.set_filter_complex("[0:a]concat=n=1:v=0:a=1[outa]")
        command.add_map("[outa]")
        command.add_output_option("map_metadata", meta)
        command.add_output_option("b:a", "64k")
        command.set_output("out.mp3")

        assert command.to_args() == [
            "/opt/ffmpeg", "-hide_banner",
            "-i", "a.mp3",
            "-i", "meta.txt",
            "-filter_complex", "[0:a]concat=n=1:v=0:a=1[outa]",
            "-map", "[outa]",
            "-map_metadata", "1",
            "-b:a", "64k",
            "-y", "out.mp3"
        ]

    def test_flag_without_value(self):
        """Test that options with a None value render as bare flags."""
        command = FFmpegCommand(global_options=[("v", "quiet"), ("stats", None)])
        command.add_input("a.mp3")
        command.set_output("-", f="null")

        assert command.to_args() == ["ffmpeg", "-v", "quiet", "-stats", "-i", "a.mp3", "-f", "null", "-y", "-"]

    def test_no_overwrite(self):
        """Test that overwrite=False renders -n."""
        command = FFmpegCommand()
        command.add_input("a.mp3")
        command.set_output("out.mp3", overwrite=False)
        assert command.to_args()[-2:] == ["-n", "out.mp3"]

    def test_large_float_has_no_exponent(self):
        """Test that seconds are always rendered as plain decimals."""
        command = FFmpegCommand()
        command.add_input("a.mp3", ss=12345678.9, t=0.000001)
        command.set_output("out.mp3")
        args = command.to_args()
        assert args[2:6] == ["-ss", "12345678.9", "-t", "0.000001"]

    def test_requires_input(self):
        """Test that a command without inputs cannot be rendered."""
        command = FFmpegCommand()
        command.set_output("out.mp3")
        with pytest.raises(ValueError, match="input"):
            command.to_args()

    def test_requires_output(self):
        """Test that a command without output cannot be rendered."""
        command = FFmpegCommand()
        command.add_input("a.mp3")
        with pytest.raises(ValueError, match="output"):
            command.to_args()

    def test_str(self):
        """Test the printable form of a command."""
        command = FFmpegCommand()
        command.add_input("a.mp3")
        command.set_output("out.mp3")
        assert str(command) == "ffmpeg -hide_banner -i a.mp3 -y out.mp3"
