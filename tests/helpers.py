from sqlmodel import Session, select

from marketplace.models.product import Product, ProductVariant
from marketplace.models.user import User, UserRole
from marketplace.models.vendor import Vendor
from marketplace.services import cart_service
from marketplace.services.cart_service import CartOwner
from marketplace.utils.token import create_access_token

ADDRESS = {
    "name": "Asha Rao",
    "phone": "9876543210",
    "address": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}

_phones = iter(range(9100000000, 9199999999))


def make_user(session: Session, phone: str = None, role: UserRole = UserRole.customer, wallet: float = 0) -> User:
    user = User(phone=phone or str(next(_phones)), role=role, is_verified=True, wallet=wallet)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_vendor(session: Session, commission: float = 10, approved: bool = True) -> Vendor:
    user = make_user(session, role=UserRole.seller)
    vendor = Vendor(
        user_id=user.id,
        business_name=f"Shoes {user.id}",
        business_email=f"vendor{user.id}@example.com",
        business_phone=user.phone,
        commission=commission,
        is_approved=approved,
    )
    session.add(vendor)
    session.commit()
    session.refresh(vendor)
    return vendor


def make_product(
    session: Session,
    vendor: Vendor,
    *,
    name: str = "Trail Runner",
    selling_price: float = 1000,
    mrp: float = 1200,
    vendor_discount: float = 0,
    website_discount: float = 0,
    variants=(("9", "black", 10),),
    is_active: bool = True,
) -> Product:
    product = Product(
        vendor_id=vendor.id,
        name=name,
        slug=f"{name.lower().replace(' ', '-')}-{vendor.id}-{selling_price}",
        description="Lightweight running shoe",
        category="sports",
        images=["https://cdn.example.com/shoe.jpg"],
        mrp=mrp,
        selling_price=selling_price,
        vendor_discount=vendor_discount,
        website_discount=website_discount,
        is_active=is_active,
    )
    session.add(product)
    session.commit()
    session.refresh(product)

    for size, color, stock in variants:
        session.add(
            ProductVariant(
                product_id=product.id,
                size=size,
                color=color,
                stock=stock,
                sku=f"SKU-{product.id}-{size}-{color}",
            )
        )
    session.commit()
    return product


def stock_of(session: Session, product_id: int, size: str = "9", color: str = "black") -> int:
    return session.exec(
        select(ProductVariant.stock).where(
            ProductVariant.product_id == product_id,
            ProductVariant.size == size,
            ProductVariant.color == color,
        )
    ).one()


def fill_cart(session: Session, user: User, product: Product, quantity: int = 1, size: str = "9", color: str = "black"):
    cart_service.add_item(session, CartOwner(user_id=user.id), product.id, size, color, quantity)


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'user_id': user.id})}"}
