import threading

from aruco_pointer.channel import Command, CommandInbox, LatestValue


def test_latest_value_starts_empty():
    box = LatestValue()
    assert box.get() == (None, 0)


def test_latest_value_keeps_only_newest():
    box = LatestValue()
    box.publish("a")
    version = box.publish("b")
    assert version == 2
    assert box.get() == ("b", 2)


def test_latest_value_concurrent_publishers():
    box = LatestValue()

    def writer():
        for i in range(200):
            box.publish(i)

    threads = [threading.Thread(target=writer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    value, version = box.get()
    assert version == 800
    assert value == 199


def test_inbox_drains_in_fixed_order():
    inbox = CommandInbox()
    inbox.post(Command.MARK)
    inbox.post(Command.RESET)
    inbox.post(Command.CANCEL_COUNTDOWN)
    assert inbox.drain() == [Command.RESET, Command.CANCEL_COUNTDOWN, Command.MARK]
    assert inbox.drain() == []


def test_inbox_coalesces_repeated_commands():
    inbox = CommandInbox()
    inbox.post(Command.MARK)
    inbox.post("mark")
    assert inbox.drain() == [Command.MARK]
