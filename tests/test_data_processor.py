"""Search Console normalisation and stats."""

from datetime import date

import pytest

from adboard.integrations.search_console import data_processor


@pytest.mark.parametrize('clicks,impressions,expected', [
    (0, 0, '0.0'),
    (25, 200, '12.5'),
    (1, 3, '33.3'),
    (5, 0, '0.0'),
])
def test_format_ctr(clicks, impressions, expected):
    assert data_processor.format_ctr(clicks, impressions) == expected


def test_keyword_rows_derive_ctr_from_clicks_and_impressions():
    rows = [
        {'keys': ['blue shoes', 'https://shop.example.com/blue'], 'clicks': 25, 'impressions': 200,
         'ctr': 0.9, 'position': 3.456},
        {'keys': ['red shoes'], 'clicks': 0, 'impressions': 0, 'position': 12},
    ]

    keywords = data_processor.normalize_keyword_rows(rows, 'https://shop.example.com')

    assert keywords == [
        {'keyword': 'blue shoes', 'landing_url': 'https://shop.example.com/blue', 'impressions': 200,
         'clicks': 25, 'ctr': '12.5', 'position': '3.5'},
        {'keyword': 'red shoes', 'landing_url': 'https://shop.example.com', 'impressions': 0,
         'clicks': 0, 'ctr': '0.0', 'position': '12.0'},
    ]


def test_stats_use_unweighted_position_and_ratio_of_sums_ctr():
    keywords = [
        {'keyword': 'a', 'clicks': 10, 'impressions': 100, 'position': '2.0'},
        {'keyword': 'b', 'clicks': 0, 'impressions': 900, 'position': '9.0'},
        {'keyword': 'c', 'clicks': 5, 'impressions': 0, 'position': '25.0'},
    ]
    pages = [{'page': f'https://example.com/{i}'} for i in range(12)]

    stats = data_processor.calculate_stats(keywords, pages, '2024-01-01', '2024-01-28')

    assert stats['total_keywords'] == 3
    assert stats['top10_keywords'] == 2
    assert stats['top3_keywords'] == 1
    assert stats['avg_position'] == '12.0'
    assert stats['total_clicks'] == 15
    assert stats['total_impressions'] == 1000
    assert stats['avg_ctr'] == '1.5'
    assert stats['est_traffic'] == 15
    assert stats['total_pages'] == 12
    assert len(stats['top_performing_pages']) == 10
    assert stats['date_range'] == {'start_date': '2024-01-01', 'end_date': '2024-01-28'}


def test_stats_on_empty_data_are_zero():
    stats = data_processor.calculate_stats([], [], '2024-01-01', '2024-01-28')

    assert stats['avg_position'] == '0.0'
    assert stats['avg_ctr'] == '0.0'
    assert stats['total_keywords'] == 0


def test_site_performance_counts_pass_verdicts():
    inspected = [
        {'url': 'a', 'index_status': 'PASS'},
        {'url': 'b', 'index_status': 'NEUTRAL'},
        {'url': 'c', 'index_status': 'PASS'},
    ]

    assert data_processor.calculate_site_performance(inspected, [{}] * 5) == {
        'total_pages': 5,
        'indexed_pages': 2,
        'crawl_errors': 1,
    }


@pytest.mark.parametrize('url,expected', [
    ('example.com', 'https://example.com'),
    ('http://example.com/', 'http://example.com/'),
    ('sc-domain:example.com', 'sc-domain:example.com'),
])
def test_format_website_url(url, expected):
    assert data_processor.format_website_url(url) == expected


def test_default_date_range_is_28_days():
    assert data_processor.get_date_range(today=date(2024, 3, 29)) == ('2024-03-01', '2024-03-29')
    assert data_processor.get_date_range('2024-01-01', '2024-01-31') == ('2024-01-01', '2024-01-31')
