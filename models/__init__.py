from .seller import Seller
from .rate_card import Rate_Card
from .seller_rate_override import Seller_Rate_Override
from .pincode_mapping import Pincode_Mapping
