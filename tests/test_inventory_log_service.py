from datetime import date, datetime

import pytest

from inventory_sync import errors
from inventory_sync.models.inventory_log import InventoryLog
from inventory_sync.schemas.inventory_log import LogFilters
from inventory_sync.services import inventory_log_service
from inventory_sync.services.pagination import page_info


@pytest.fixture
def add_log(db):
    def _add(product, previous, new, source="api", at=None):
        log = InventoryLog(
            product_id=product.id,
            previous_stock=previous,
            new_stock=new,
            change_amount=new - previous,
            user_source=source,
        )
        if at is not None:
            log.created_at = at
        db.add(log)
        db.commit()
        return log

    return _add


def test_page_info_middle_page():
    info = page_info(total=47, page=3, per_page=10)

    assert info == {
        "current_page": 3,
        "per_page": 10,
        "total": 47,
        "last_page": 5,
        "from": 21,
        "to": 30,
        "has_more_pages": True,
    }


def test_page_info_last_and_empty():
    assert (page_info(47, 5, 10)["from"], page_info(47, 5, 10)["to"]) == (41, 47)
    empty = page_info(0, 1, 10)
    assert (empty["from"], empty["to"], empty["last_page"], empty["has_more_pages"]) == (0, 0, 0, False)


def test_list_logs_newest_first_with_id_tiebreak(db, make_product, add_log):
    product = make_product(stock=0)
    noon = datetime(2024, 1, 10, 12, 0, 0)
    older = add_log(product, 0, 5, at=datetime(2024, 1, 9, 8, 0, 0)).id
    first_tie = add_log(product, 5, 7, at=noon).id
    second_tie = add_log(product, 7, 9, at=noon).id

    logs, pagination = inventory_log_service.list_logs(db, LogFilters())

    assert [log.id for log in logs] == [second_tie, first_tie, older]
    assert pagination["total"] == 3
    stamps = [log.created_at for log in logs]
    assert stamps == sorted(stamps, reverse=True)


def test_list_logs_filters_combine(db, make_product, add_log):
    apple = make_product(name="Apple", stock=0)
    pear = make_product(name="Pear", stock=0)
    add_log(apple, 0, 10, "PrestaShop", datetime(2024, 1, 9, 23, 59, 59))
    wanted = add_log(apple, 10, 4, "wordpress-plugin", datetime(2024, 1, 10, 0, 0, 0)).id
    add_log(apple, 4, 6, "api", datetime(2024, 1, 10, 23, 59, 59))
    add_log(pear, 0, 3, "WordPress", datetime(2024, 1, 10, 9, 0, 0))
    add_log(apple, 6, 1, "WORDPRESS", datetime(2024, 1, 11, 0, 0, 0))

    filters = LogFilters(
        product_id=apple.id, date_from=date(2024, 1, 10), date_to=date(2024, 1, 10), user_source="WordPress"
    )
    logs, pagination = inventory_log_service.list_logs(db, filters)

    assert [log.id for log in logs] == [wanted]
    assert pagination["total"] == 1
    assert logs[0].product_name == "Apple"


def test_date_range_is_inclusive_by_calendar_day(db, make_product, add_log):
    product = make_product(stock=0)
    for day in (9, 10, 11, 12):
        add_log(product, 0, day, at=datetime(2024, 1, day, 23, 59, 59))

    logs, _ = inventory_log_service.list_logs(
        db, LogFilters(date_from=date(2024, 1, 10), date_to=date(2024, 1, 11))
    )

    assert sorted(log.new_stock for log in logs) == [10, 11]


def test_user_source_match_is_literal(db, make_product, add_log):
    product = make_product(stock=0)
    add_log(product, 0, 1, "bulk_api")
    add_log(product, 1, 2, "bulkXapi")

    logs, _ = inventory_log_service.list_logs(db, LogFilters(user_source="k_a"))

    assert [log.user_source for log in logs] == ["bulk_api"]


def test_list_logs_pages(db, make_product, add_log):
    product = make_product(stock=0)
    for i in range(25):
        add_log(product, i, i + 1, at=datetime(2024, 2, 1, 0, 0, i))

    logs, pagination = inventory_log_service.list_logs(db, LogFilters(), page=3, per_page=10)

    assert [log.new_stock for log in logs] == [5, 4, 3, 2, 1]
    assert (pagination["from"], pagination["to"], pagination["last_page"]) == (21, 25, 3)
    assert pagination["has_more_pages"] is False


def test_list_logs_is_repeatable(db, make_product, add_log):
    product = make_product(stock=0)
    add_log(product, 0, 4)
    add_log(product, 4, 2)

    first = inventory_log_service.list_logs(db, LogFilters(), per_page=5)
    second = inventory_log_service.list_logs(db, LogFilters(), per_page=5)

    assert [log.id for log in first[0]] == [log.id for log in second[0]]
    assert first[1] == second[1]


@pytest.mark.parametrize(
    "page, per_page",
    [(0, 10), (1, 0), (1, 101)],
)
def test_list_logs_rejects_bad_paging(db, page, per_page):
    with pytest.raises(errors.ValidationError):
        inventory_log_service.list_logs(db, LogFilters(), page=page, per_page=per_page, max_per_page=100)


def test_list_logs_rejects_inverted_range(db):
    with pytest.raises(errors.ValidationError):
        inventory_log_service.list_logs(db, LogFilters(date_from=date(2024, 3, 2), date_to=date(2024, 3, 1)))


def test_logs_for_product_limit(db, make_product, add_log):
    product = make_product(stock=0)
    other = make_product(stock=0)
    for i in range(5):
        add_log(product, i, i + 1, at=datetime(2024, 1, 1, 0, i))
    add_log(other, 0, 1)

    logs = inventory_log_service.logs_for_product(db, product.id, limit=3)

    assert [log.new_stock for log in logs] == [5, 4, 3]


def test_statistics(db, make_product, add_log):
    product = make_product(stock=0)
    add_log(product, 0, 100, at=datetime(2024, 1, 1, 10, 0))
    add_log(product, 100, 70, at=datetime(2024, 1, 2, 10, 0))
    add_log(product, 70, 90, at=datetime(2024, 1, 3, 10, 0))
    add_log(product, 90, 40, at=datetime(2024, 1, 4, 10, 0))

    stats = inventory_log_service.get_statistics(db)

    assert stats == {
        "total_logs": 4,
        "total_stock_increases": 120,
        "total_stock_decreases": 80,
        "net_change": 40,
    }

    ranged = inventory_log_service.get_statistics(db, date_from=date(2024, 1, 2), date_to=date(2024, 1, 3))
    assert ranged == {
        "total_logs": 2,
        "total_stock_increases": 20,
        "total_stock_decreases": 30,
        "net_change": -10,
    }


def test_statistics_net_change_matches_sum_of_changes(db, make_product, add_log):
    product = make_product(stock=0)
    stock = 0
    for target in (5, 0, 12, 12, 3, 40):
        add_log(product, stock, target)
        stock = target

    stats = inventory_log_service.get_statistics(db, product_id=product.id)
    total = sum(log.change_amount for log in db.query(InventoryLog).all())

    assert stats["net_change"] == total == 40
    assert stats["total_logs"] == 6


def test_statistics_empty(db):
    assert inventory_log_service.get_statistics(db) == {
        "total_logs": 0,
        "total_stock_increases": 0,
        "total_stock_decreases": 0,
        "net_change": 0,
    }


def test_export_logs_cap(db, make_product, add_log):
    product = make_product(stock=0)
    for i in range(4):
        add_log(product, i, i + 1)

    assert len(inventory_log_service.export_logs(db, LogFilters(), limit=3)) == 3
