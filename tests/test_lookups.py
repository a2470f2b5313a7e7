from bridge_watchdog.lookups import AddressBook, get_version


def test_get_version():
    versions = {"v1": "AAAA", "v1.1": "BBBB"}
    assert get_version(versions, "BBBB") == "v1.1"
    assert get_version(versions, "CCCC") is None
    assert get_version({}, "AAAA") is None


def test_address_book_lookups():
    book = AddressBook()
    book.add("AA1", "0xabc")
    book.add("AA2", "0xabc")
    book.add("AA1", "0xabc")
    book.add("AA3", "0xdef")
    assert AddressBook() is book
    assert book.get_assistants_for_eth_address("0xabc") == ["AA1", "AA2"]
    assert book.get_assistants_for_eth_address("0x000") == []
    assert book.get_eth_address_for_assistant("AA3") == "0xdef"
    assert book.get_eth_address_for_assistant("AA9") is None
