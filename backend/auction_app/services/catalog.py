from dataclasses import dataclass

ROLE_BATTER = "BATTER"
ROLE_BOWLER = "BOWLER"
ROLE_ALL_ROUNDER = "ALL-ROUNDER"
ROLE_WICKET_KEEPER = "WICKET-KEEPER"


@dataclass(frozen=True)
class Franchise:
    id: str
    name: str
    short_name: str
    color: str
    secondary_color: str


@dataclass(frozen=True)
class Item:
    id: int
    name: str
    country: str
    role: str
    base_price: int
    set_code: str
    overseas: bool


FRANCHISES: tuple[Franchise, ...] = (
    Franchise("CSK", "Chennai Super Kings", "CSK", "#FFFF35", "#005CA8"),
    Franchise("MI", "Mumbai Indians", "MI", "#004BA0", "#D1AB3E"),
    Franchise("RCB", "Royal Challengers Bengaluru", "RCB", "#EC1C24", "#2B2A29"),
    Franchise("KKR", "Kolkata Knight Riders", "KKR", "#3A225D", "#F2D06B"),
    Franchise("DC", "Delhi Capitals", "DC", "#00008B", "#EF1B23"),
    Franchise("PBKS", "Punjab Kings", "PBKS", "#ED1B24", "#D1D3D4"),
    Franchise("RR", "Rajasthan Royals", "RR", "#EA1A85", "#004B8C"),
    Franchise("SRH", "Sunrisers Hyderabad", "SRH", "#F26522", "#231F20"),
    Franchise("GT", "Gujarat Titans", "GT", "#1B2133", "#B8975D"),
    Franchise("LSG", "Lucknow Super Giants", "LSG", "#0057E2", "#FF4D4D"),
)

# Position in this tuple is the auction order. Prices are in lakh.
PLAYER_POOL: tuple[Item, ...] = (
    Item(1, "Rohit Sharma", "India", ROLE_BATTER, 200, "BA1", False),
    Item(2, "Virat Kohli", "India", ROLE_BATTER, 200, "BA1", False),
    Item(3, "Travis Head", "Australia", ROLE_BATTER, 200, "BA1", True),
    Item(4, "Shubman Gill", "India", ROLE_BATTER, 200, "BA1", False),
    Item(5, "Devon Conway", "New Zealand", ROLE_BATTER, 200, "BA1", True),
    Item(6, "David Warner", "Australia", ROLE_BATTER, 200, "BA1", True),
    Item(7, "Yashasvi Jaiswal", "India", ROLE_BATTER, 150, "BA2", False),
    Item(8, "Ruturaj Gaikwad", "India", ROLE_BATTER, 150, "BA2", False),
    Item(9, "Suryakumar Yadav", "India", ROLE_BATTER, 200, "BA1", False),
    Item(10, "Kane Williamson", "New Zealand", ROLE_BATTER, 200, "BA1", True),
    Item(11, "Hardik Pandya", "India", ROLE_ALL_ROUNDER, 200, "AR1", False),
    Item(12, "Ravindra Jadeja", "India", ROLE_ALL_ROUNDER, 200, "AR1", False),
    Item(13, "Rashid Khan", "Afghanistan", ROLE_ALL_ROUNDER, 200, "AR1", True),
    Item(14, "Glenn Maxwell", "Australia", ROLE_ALL_ROUNDER, 200, "AR1", True),
    Item(15, "Andre Russell", "West Indies", ROLE_ALL_ROUNDER, 200, "AR1", True),
    Item(21, "Rishabh Pant", "India", ROLE_WICKET_KEEPER, 200, "WK1", False),
    Item(22, "Heinrich Klaasen", "South Africa", ROLE_WICKET_KEEPER, 200, "WK1", True),
    Item(23, "Jos Buttler", "England", ROLE_WICKET_KEEPER, 200, "WK1", True),
    Item(24, "KL Rahul", "India", ROLE_WICKET_KEEPER, 200, "WK1", False),
    Item(25, "Sanju Samson", "India", ROLE_WICKET_KEEPER, 200, "WK1", False),
    Item(31, "Jasprit Bumrah", "India", ROLE_BOWLER, 200, "BO1", False),
    Item(32, "Mitchell Starc", "Australia", ROLE_BOWLER, 200, "BO1", True),
    Item(33, "Mohammed Shami", "India", ROLE_BOWLER, 200, "BO1", False),
    Item(34, "Kagiso Rabada", "South Africa", ROLE_BOWLER, 200, "BO1", True),
    Item(35, "Trent Boult", "New Zealand", ROLE_BOWLER, 200, "BO1", True),
)


def franchise_ids(franchises: tuple[Franchise, ...] = FRANCHISES) -> list[str]:
    return [franchise.id for franchise in franchises]
