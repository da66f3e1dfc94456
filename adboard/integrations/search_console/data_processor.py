"""
Search Console Data Processor
Normalizes searchAnalytics rows into display records and computes the
stats block the dashboard shows above the keyword table.

Numbers that are displayed (ctr, position, avg_position, avg_ctr) are
fixed-point strings with one decimal so the UI never re-formats them.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_LOOKBACK_DAYS = 28
TOP_PAGES_IN_STATS = 10
INDEXED_VERDICT = 'PASS'


def format_ctr(clicks: float, impressions: float) -> str:
    """clicks / impressions * 100 to one decimal; "0.0" when there are no impressions"""
    if not impressions:
        return '0.0'
    return f"{clicks / impressions * 100:.1f}"


def format_position(position: Optional[float]) -> str:
    if not position:
        return '0.0'
    return f"{float(position):.1f}"


def format_website_url(website_url: str) -> str:
    """Search Console property URLs need a scheme"""
    website_url = website_url.strip()
    if website_url.startswith('http') or website_url.startswith('sc-domain:'):
        return website_url
    return f"https://{website_url}"


def get_date_range(start_date: Optional[str] = None, end_date: Optional[str] = None,
                   today: Optional[date] = None) -> Tuple[str, str]:
    """ISO dates; defaults to the last 28 days through today"""
    today = today or datetime.now(timezone.utc).date()
    start = start_date or (today - timedelta(days=DEFAULT_LOOKBACK_DAYS)).isoformat()
    end = end_date or today.isoformat()
    return start, end


def normalize_keyword_rows(rows: List[Dict[str, Any]], website_url: str) -> List[Dict[str, Any]]:
    """Rows from a [query, page] query"""
    keywords = []
    for row in rows:
        keys = row.get('keys') or []
        if not keys:
            continue
        impressions = row.get('impressions') or 0
        clicks = row.get('clicks') or 0
        keywords.append({
            'keyword': keys[0],
            'landing_url': keys[1] if len(keys) > 1 and keys[1] else website_url,
            'impressions': impressions,
            'clicks': clicks,
            'ctr': format_ctr(clicks, impressions),
            'position': format_position(row.get('position')),
        })
    return keywords


def normalize_page_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Rows from a [page] query"""
    pages = []
    for row in rows:
        keys = row.get('keys') or []
        if not keys:
            continue
        impressions = row.get('impressions') or 0
        clicks = row.get('clicks') or 0
        pages.append({
            'page': keys[0],
            'impressions': impressions,
            'clicks': clicks,
            'ctr': format_ctr(clicks, impressions),
            'position': format_position(row.get('position')),
        })
    return pages


def normalize_inspection(page_url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """One urlInspection/index:inspect response"""
    index_status = (payload.get('inspectionResult') or {}).get('indexStatusResult') or {}
    return {
        'url': page_url,
        'index_status': index_status.get('verdict', 'UNKNOWN'),
        'crawled_as': index_status.get('crawledAs', 'UNKNOWN'),
        'last_crawled': index_status.get('lastCrawlTime'),
        'coverage_state': index_status.get('coverageState'),
    }


def calculate_site_performance(url_meta_data: List[Dict[str, Any]],
                               pages: List[Dict[str, Any]]) -> Dict[str, int]:
    indexed = sum(1 for item in url_meta_data if item['index_status'] == INDEXED_VERDICT)
    return {
        'total_pages': len(pages),
        'indexed_pages': indexed,
        'crawl_errors': len(url_meta_data) - indexed,
    }


def calculate_stats(keywords: List[Dict[str, Any]], pages: List[Dict[str, Any]],
                    start_date: str, end_date: str) -> Dict[str, Any]:
    """
    Aggregate stats over whatever was fetched successfully.

    avg_position is the unweighted mean of row positions; avg_ctr is the
    ratio of summed clicks to summed impressions.
    """
    total_clicks = sum(k['clicks'] for k in keywords)
    total_impressions = sum(k['impressions'] for k in keywords)
    positions = [float(k['position']) for k in keywords]

    return {
        'total_keywords': len(keywords),
        'top10_keywords': sum(1 for p in positions if p <= 10),
        'top3_keywords': sum(1 for p in positions if p <= 3),
        'avg_position': f"{sum(positions) / len(positions):.1f}" if positions else '0.0',
        'total_clicks': total_clicks,
        'total_impressions': total_impressions,
        'avg_ctr': format_ctr(total_clicks, total_impressions),
        'est_traffic': total_clicks,
        'total_pages': len(pages),
        'top_performing_pages': pages[:TOP_PAGES_IN_STATS],
        'date_range': {'start_date': start_date, 'end_date': end_date},
    }
