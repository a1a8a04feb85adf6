from accterm.announce import Announcement, AnnouncementChannel


def test_subscribers_receive_announcements() -> None:
    channel = AnnouncementChannel()
    received: list[Announcement] = []
    unsubscribe = channel.subscribe(received.append)

    channel.announce("Block 1 of 2", kind="navigation")
    unsubscribe()
    channel.announce("later")

    assert [(item.message, item.kind) for item in received] == [("Block 1 of 2", "navigation")]
    assert channel.messages() == ["Block 1 of 2", "later"]


def test_empty_messages_are_skipped() -> None:
    channel = AnnouncementChannel()
    channel.announce("")
    assert channel.last() is None


def test_failing_subscriber_does_not_block_others() -> None:
    channel = AnnouncementChannel()
    received: list[str] = []

    def _broken(_item: Announcement) -> None:
        raise RuntimeError("speech engine offline")

    channel.subscribe(_broken)
    channel.subscribe(lambda item: received.append(item.message))

    channel.announce("Screen cleared")

    assert received == ["Screen cleared"]


def test_history_is_bounded() -> None:
    channel = AnnouncementChannel(history_limit=2)
    for message in ("a", "b", "c"):
        channel.announce(message)
    assert channel.messages() == ["b", "c"]
