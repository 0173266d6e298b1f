# services
from shipping_partner.bluedart.bluedart import Bluedart
from shipping_partner.delhivery.delhivery import Delhivery
from shipping_partner.dtdc.dtdc import Dtdc
from shipping_partner.ekart.ekart import Ekart
from shipping_partner.xpressbees.xpressbees import Xpressbees

courier_service_mapping = {
    "delhivery": Delhivery,
    "xpressbees": Xpressbees,
    "bluedart": Bluedart,
    "ekart": Ekart,
    "dtdc": Dtdc,
}
