from catalog_scan.status import StatusBoard, StatusLevel


def test_starts_with_idle_prompt(clock):
    board = StatusBoard("Point camera at barcode...", clock=clock)

    current = board.current()
    assert current.text == "Point camera at barcode..."
    assert current.level is StatusLevel.info


def test_message_reverts_after_ttl(clock):
    board = StatusBoard("idle", clock=clock)
    board.show("Scanned: Soap", StatusLevel.success, ttl=2)

    clock.advance(1.9)
    assert board.current().text == "Scanned: Soap"

    clock.advance(0.1)
    assert board.current().text == "idle"


def test_message_without_ttl_stays(clock):
    board = StatusBoard("idle", clock=clock)
    board.show("Starting scanner...")

    clock.advance(60)
    assert board.current().text == "Starting scanner..."


def test_stale_expiry_does_not_clobber_newer_message(clock):
    board = StatusBoard("idle", clock=clock)
    first = board.show("first", ttl=2)
    clock.advance(1)
    board.show("second", ttl=2)

    assert board.expire(first) is False
    # first's deadline passes but second is still on display
    clock.advance(1.5)
    assert board.current().text == "second"

    clock.advance(0.5)
    assert board.current().text == "idle"


def test_reset(clock):
    board = StatusBoard("idle", clock=clock)
    board.show("error", StatusLevel.error, ttl=3)
    board.reset()
    assert board.current().text == "idle"
    assert board.current().level is StatusLevel.info
