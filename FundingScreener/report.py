# FundingScreener/report.py
import pandas as pd

from .models import ScreenerResponse

CSV_COLUMNS = [
    'symbol',
    'name',
    'ticker',
    'funding',
    'market_cap',
    'turnover_24h',
    'next_funding',
    'mark_price',
    'open_interest',
    'oi_value_usd',
    'alert',
]


def rows_to_frame(response: ScreenerResponse) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                'symbol':       r.symbol,
                'name':         r.display_name,
                'ticker':       r.ticker,
                'funding':      r.funding_rate,
                'market_cap':   r.market_cap_usd,
                'turnover_24h': r.turnover_24h_usd,
                'next_funding': r.next_funding_time_utc,
                'mark_price':   r.mark_price,
                'open_interest':r.open_interest,
                'oi_value_usd': r.open_interest_value_usd,
                'alert':        r.alert,
            }
            for r in response.rows
        ],
        columns=CSV_COLUMNS,
    )
    # market caps are whole dollars; keep them integral next to missing values
    df['market_cap'] = pd.to_numeric(df['market_cap']).astype('Int64')
    return df


def write_csv(response: ScreenerResponse, path_or_buf=None):
    """Missing values are written as empty cells."""
    return rows_to_frame(response).to_csv(path_or_buf, index=False, na_rep='')


def fmt_funding(fr) -> str:
    return f"{fr * 100:.4f}%"


def fmt_num(n, digits: int = 2) -> str:
    if n is None or pd.isna(n):
        return '-'
    return f"{n:,.{digits}f}"


def format_table(response: ScreenerResponse) -> str:
    title = (f"{response.filters.exchange.value} · {response.filters.direction.value} funding · "
             f"{response.count} rows · {response.updated_at_utc}")
    if not response.rows:
        return f"{title}\nNo symbols passed the filters."

    df = rows_to_frame(response)
    view = pd.DataFrame({
        'Symbol':       df['symbol'],
        'Name':         df['name'],
        'Funding':      df['funding'].map(fmt_funding),
        'Market cap':   df['market_cap'].map(lambda v: fmt_num(v, 0)),
        'Turnover 24h': df['turnover_24h'].map(lambda v: fmt_num(v, 0)),
        'Next funding': df['next_funding'],
        'Mark price':   df['mark_price'].map(lambda v: fmt_num(v, 8)),
        'OI':           df['open_interest'].map(lambda v: fmt_num(v, 2)),
        'OI value':     df['oi_value_usd'].map(lambda v: fmt_num(v, 0)),
    })
    return f"{title}\n{view.to_string(index=False)}"
