# Delhivery reports a StatusType (UD forward, RT return, DL delivered,
# PP/PU pickup, CN cancelled) plus a StatusCode per scan.
status_mapping = {
    "UD": {
        "X-UCI": {"status": "booked", "sub_status": "booked"},
        "FMPUR-101": {"status": "pickup", "sub_status": "pickup pending"},
        "X-PPOM": {"status": "in transit", "sub_status": "pickup completed"},
        "X-PIOM": {"status": "in transit", "sub_status": "in transit"},
        "X-ILL1F": {"status": "in transit", "sub_status": "in transit"},
        "X-ILL2F": {"status": "in transit", "sub_status": "in transit"},
        "X-IBD3F": {"status": "in transit", "sub_status": "reached destination hub"},
        "X-DDD3FD": {"status": "out for delivery", "sub_status": "out for delivery"},
        "EOD-6": {"status": "NDR", "sub_status": "consignee refused"},
        "EOD-11": {"status": "NDR", "sub_status": "consignee unavailable"},
        "EOD-69": {"status": "NDR", "sub_status": "address incomplete"},
        "EOD-74": {"status": "NDR", "sub_status": "NDR"},
        "ST-108": {"status": "NDR", "sub_status": "shipment lost"},
    },
    "PP": {
        "X-ASP": {"status": "pickup", "sub_status": "pickup scheduled"},
        "FMPUR-101": {"status": "pickup", "sub_status": "pickup pending"},
        "FMEOD-103": {"status": "pickup", "sub_status": "pickup failed"},
    },
    "PU": {
        "X-PPOM": {"status": "in transit", "sub_status": "pickup completed"},
        "X-PROM": {"status": "in transit", "sub_status": "pickup completed"},
    },
    "DL": {
        "EOD-38": {"status": "delivered", "sub_status": "delivered"},
        "RD-AC": {"status": "RTO", "sub_status": "RTO delivered"},
    },
    "RT": {
        "RT-101": {"status": "RTO", "sub_status": "RTO initiated"},
        "RT-108": {"status": "RTO", "sub_status": "RTO in transit"},
        "RT-113": {"status": "RTO", "sub_status": "RTO in transit"},
        "X-DDD3FD": {"status": "RTO", "sub_status": "RTO out for delivery"},
    },
    "CN": {
        "CN-101": {"status": "cancelled", "sub_status": "cancelled"},
    },
}
