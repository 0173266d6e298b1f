# keyed by BlueDart ScanType, then ScanCode
status_mapping = {
    "PU": {
        "015": {"status": "pickup", "sub_status": "pickup pending"},
        "001": {"status": "in transit", "sub_status": "pickup completed"},
        "030": {"status": "pickup", "sub_status": "pickup failed"},
    },
    "UD": {
        "001": {"status": "in transit", "sub_status": "in transit"},
        "002": {"status": "in transit", "sub_status": "in transit"},
        "003": {"status": "in transit", "sub_status": "reached destination hub"},
        "100": {"status": "out for delivery", "sub_status": "out for delivery"},
        "005": {"status": "NDR", "sub_status": "consignee unavailable"},
        "006": {"status": "NDR", "sub_status": "consignee refused"},
        "019": {"status": "NDR", "sub_status": "address incomplete"},
        "074": {"status": "NDR", "sub_status": "NDR"},
        "025": {"status": "NDR", "sub_status": "lost"},
    },
    "DL": {
        "000": {"status": "delivered", "sub_status": "delivered"},
    },
    "RT": {
        "074": {"status": "RTO", "sub_status": "RTO initiated"},
        "001": {"status": "RTO", "sub_status": "RTO in transit"},
        "100": {"status": "RTO", "sub_status": "RTO out for delivery"},
        "000": {"status": "RTO", "sub_status": "RTO delivered"},
    },
}
