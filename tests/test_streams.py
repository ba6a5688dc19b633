import sys

from sandbox.streams import OutputBuffer, RedirectedStreams


def test_output_buffer_accumulates_and_clears():
    buffer = OutputBuffer()
    assert buffer.write("hello ") == 6
    _ = buffer.write("world")
    assert buffer.getvalue() == "hello world"

    buffer.clear()
    assert buffer.getvalue() == ""
    assert buffer.isatty() is False


def test_read_before_any_run_is_empty():
    streams = RedirectedStreams()
    assert streams.read_stdout() == ""
    assert streams.read_stderr() == ""


def test_reading_twice_returns_same_text():
    streams = RedirectedStreams()
    _ = streams.stdout.write("out\n")
    _ = streams.stderr.write("err\n")

    assert streams.read_stdout() == streams.read_stdout() == "out\n"
    assert streams.read_stderr() == streams.read_stderr() == "err\n"


def test_clear_resets_both_buffers():
    streams = RedirectedStreams()
    _ = streams.stdout.write("a")
    _ = streams.stderr.write("b")

    streams.clear()

    assert streams.read_stdout() == ""
    assert streams.read_stderr() == ""


def test_install_redirect_captures_print_and_restore_puts_back_originals():
    original_stdout, original_stderr = sys.stdout, sys.stderr
    streams = RedirectedStreams()
    streams.install_redirect()
    try:
        print("captured")
        print("warning", file=sys.stderr)
        assert streams.installed is True
    finally:
        streams.restore()

    assert sys.stdout is original_stdout
    assert sys.stderr is original_stderr
    assert streams.read_stdout() == "captured\n"
    assert streams.read_stderr() == "warning\n"
