"""Province names and the wholesale-market keywords that belong to each."""

REGIONS = (
    "서울", "부산", "대구", "인천", "광주", "대전", "울산", "세종",
    "경기", "강원", "충북", "충남", "전북", "전남", "경북", "경남", "제주",
)

MARKET_REGION_KEYWORDS = {
    "서울": ["가락", "강서", "청과", "농수산", "서울", "송파", "강동"],
    "부산": ["부산", "서부산", "동부산", "북부산", "남부산"],
    "대구": ["대구", "서문", "북대구", "남대구"],
    "인천": ["인천", "남인천", "북인천", "서인천"],
    "광주": ["광주", "무등", "광주시"],
    "대전": ["대전", "유성", "서대전"],
    "울산": ["울산", "남울산"],
    "경기": [
        "수원", "안양", "고양", "성남", "용인", "부천", "안산", "평택", "시흥", "김포",
        "광명", "하남", "이천", "오산", "의정부", "안성", "구리", "남양주", "화성", "양주",
        "포천", "여주", "연천", "가평", "양평", "경기", "과천", "군포", "의왕", "동두천",
    ],
    "강원": [
        "강릉", "춘천", "원주", "속초", "삼척", "태백", "동해", "영월", "평창", "정선",
        "철원", "화천", "양구", "인제", "고성", "양양", "홍천", "횡성", "강원",
    ],
    "충북": ["청주", "충주", "제천", "보은", "옥천", "증평", "진천", "괴산", "음성", "단양", "충북"],
    "충남": [
        "천안", "아산", "서산", "당진", "공주", "보령", "계룡", "논산", "부여", "서천",
        "청양", "홍성", "예산", "태안", "금산", "충남",
    ],
    "전북": [
        "전주", "익산", "정읍", "남원", "김제", "완주", "진안", "무주", "장수", "임실",
        "순창", "고창", "부안", "전북",
    ],
    "전남": [
        "목포", "여수", "순천", "나주", "광양", "담양", "곡성", "구례", "고흥", "보성",
        "화순", "장흥", "강진", "해남", "영암", "무안", "함평", "영광", "장성", "완도",
        "진도", "신안", "전남",
    ],
    "경북": [
        "포항", "경주", "김천", "안동", "구미", "영주", "영천", "상주", "문경", "경산",
        "군위", "의성", "청송", "영양", "영덕", "청도", "고령", "성주", "칠곡", "예천",
        "봉화", "울진", "울릉", "경북",
    ],
    "경남": [
        "창원", "마산", "진해", "진주", "통영", "사천", "김해", "밀양", "거제", "양산",
        "의령", "함안", "창녕", "고성", "남해", "하동", "산청", "함양", "거창", "합천", "경남",
    ],
    "제주": ["제주", "서귀포"],
}

# Longest first so "농수산시장" is stripped before "시장".
_MARKET_SUFFIXES = ("농수산시장", "공영시장", "도매시장", "청과시장", "시장")


def market_in_region(market_name, region):
    """Whether a wholesale market name belongs to ``region``.

    Unknown regions fall back to matching the region name itself.
    """
    region = (region or "").strip()
    if not region:
        return True

    cleaned = market_name or ""
    for suffix in _MARKET_SUFFIXES:
        cleaned = cleaned.replace(suffix, "")
    cleaned = cleaned.strip().lower()

    keywords = MARKET_REGION_KEYWORDS.get(region, [region])
    return any(keyword.lower() in cleaned for keyword in keywords)
