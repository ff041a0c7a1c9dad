from qrmenu.models.user import User, UserRole
from qrmenu.models.restaurant import Restaurant
from qrmenu.models.menu_category import MenuCategory
from qrmenu.models.menu_item import MenuItem, MenuItemVariant
from qrmenu.models.menu_addon import MenuItemAddon, AddonOption, AddonType, MenuItemAddonMapping
from qrmenu.models.table import RestaurantTable
from qrmenu.models.order import Order, OrderStatus, STATUS_FLOW
from qrmenu.models.order_item import OrderItem
from qrmenu.models.menu_draft import MenuDraft
