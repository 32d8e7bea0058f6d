from __future__ import annotations

from typing import Dict, List

# Static constituent tables. Kept small and hand-maintained; symbols are
# validated by the broker at order time.
PREDEFINED_LISTS: Dict[str, List[str]] = {
    "mag7": ["AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA"],
    "dow30": [
        "AAPL", "AMGN", "AXP", "BA", "CAT", "CRM", "CSCO", "CVX", "DIS", "DOW",
        "GS", "HD", "HON", "IBM", "INTC", "JNJ", "JPM", "KO", "MCD", "MMM",
        "MRK", "MSFT", "NKE", "PG", "TRV", "UNH", "V", "VZ", "WBA", "WMT",
    ],
    "sp500_top10": [
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA", "BRK.B", "UNH", "JNJ",
    ],
    "sp500_top50": [
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA", "BRK.B", "UNH", "JNJ",
        "V", "XOM", "JPM", "WMT", "PG", "MA", "HD", "CVX", "MRK", "ABBV",
        "LLY", "PEP", "KO", "COST", "AVGO", "TMO", "MCD", "CSCO", "ACN", "ABT",
        "DHR", "CRM", "ADBE", "CMCSA", "NKE", "PFE", "NFLX", "TXN", "AMD", "NEE",
        "INTC", "PM", "RTX", "HON", "AMGN", "QCOM", "T", "UPS", "MS", "ORCL",
    ],
    "nasdaq100_top10": [
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA", "AVGO", "COST", "ADBE",
    ],
    "nasdaq100_top50": [
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA", "AVGO", "COST", "ADBE",
        "CSCO", "NFLX", "AMD", "INTC", "QCOM", "TXN", "INTU", "CMCSA", "AMGN", "HON",
        "AMAT", "SBUX", "BKNG", "ISRG", "GILD", "MDLZ", "ADI", "VRTX", "LRCX", "REGN",
        "PYPL", "PANW", "SNPS", "KLAC", "CDNS", "ASML", "ADP", "MELI", "MNST", "CSX",
        "MAR", "ORLY", "NXPI", "FTNT", "PCAR", "MRNA", "AEP", "CTAS", "MCHP", "KDP",
    ],
    "russell2000_top50": [
        "SMCI", "CELH", "COOP", "EXAS", "PCVX", "HALO", "AXON", "LNTH", "PI", "RCM",
        "KTOS", "ENVX", "GSHD", "SFM", "AEHR", "CPRX", "UFPI", "CVLT", "APLS", "SPSC",
        "CRVL", "OLO", "FORM", "TMDX", "KRYS", "PRCT", "AGIO", "BRBR", "VCEL", "SAIA",
        "BCPC", "XPEL", "FROG", "IOVA", "ANF", "BOOT", "VCYT", "RXRX", "ESTE", "RELY",
        "SPWR", "MGY", "MNDY", "WFRD", "PRGS", "NEOG", "ROIC", "VERX", "AUR", "CRGY",
    ],
    # Crypto pairs use the separator spelling; they cannot be shorted.
    "crypto_top10": [
        "BTC/USD", "ETH/USD", "SOL/USD", "XRP/USD", "DOGE/USD",
        "ADA/USD", "AVAX/USD", "DOT/USD", "MATIC/USD", "LINK/USD",
    ],
}


def predefined_symbols(list_id: str) -> List[str]:
    """Constituents of a predefined list; unknown ids yield an empty list."""
    return list(PREDEFINED_LISTS.get((list_id or "").lower(), []))
