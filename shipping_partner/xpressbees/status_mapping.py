status_mapping = {
    "DRC": {"status": "booked", "sub_status": "booked"},
    "PP": {"status": "pickup", "sub_status": "pickup pending"},
    "PND": {"status": "pickup", "sub_status": "pickup failed"},
    "PKD": {"status": "in transit", "sub_status": "pickup completed"},
    "IT": {"status": "in transit", "sub_status": "in transit"},
    "RAD": {"status": "in transit", "sub_status": "reached destination hub"},
    "OFD": {"status": "out for delivery", "sub_status": "out for delivery"},
    "DLVD": {"status": "delivered", "sub_status": "delivered"},
    "UD": {"status": "NDR", "sub_status": "NDR"},
    "LT": {"status": "NDR", "sub_status": "lost"},
    "DG": {"status": "NDR", "sub_status": "damaged"},
    "RTO": {"status": "RTO", "sub_status": "RTO initiated"},
    "RTO-IT": {"status": "RTO", "sub_status": "RTO in transit"},
    "RTO-OFD": {"status": "RTO", "sub_status": "RTO out for delivery"},
    "RTD": {"status": "RTO", "sub_status": "RTO delivered"},
    "CAN": {"status": "cancelled", "sub_status": "cancelled"},
}
