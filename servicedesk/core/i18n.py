"""
Arabic translations for API messages.

Errors raised without an explicit Arabic message are looked up here by their
English text. Unknown messages fall back to a generic Arabic phrase so every
response body carries both languages.
"""
from typing import Iterable, List, Optional

FALLBACK_AR = "حدث خطأ"

MESSAGES_AR = {
    # Auth
    "Not authenticated": "غير مصادق",
    "Invalid or expired token": "رمز الدخول غير صالح أو منتهي الصلاحية",
    "Invalid credentials": "بيانات الدخول غير صحيحة",
    "Account is inactive": "الحساب غير نشط",
    "Customer account is inactive": "حساب العميل غير نشط",
    "Employee account is inactive": "حساب الموظف غير نشط",
    "Email already registered": "البريد الإلكتروني مسجل بالفعل",
    "Invalid refresh token": "رمز التحديث غير صالح",
    "Refresh token has been revoked": "تم إلغاء رمز التحديث",
    "Refresh token has expired": "انتهت صلاحية رمز التحديث",
    "Invalid reset token": "رمز إعادة التعيين غير صالح",
    "Reset token has already been used": "تم استخدام رمز إعادة التعيين بالفعل",
    "Reset token has expired": "انتهت صلاحية رمز إعادة التعيين",
    "Invalid verification token": "رمز التحقق غير صالح",
    "Verification token has already been used": "تم استخدام رمز التحقق بالفعل",
    "Verification token has expired": "انتهت صلاحية رمز التحقق",
    "Email is already verified": "البريد الإلكتروني مُفعّل بالفعل",
    "Passwords do not match": "كلمتا المرور غير متطابقتين",
    "Current password is incorrect": "كلمة المرور الحالية غير صحيحة",
    "Company name is required for CORPORATE customer type": "اسم الشركة مطلوب لنوع العميل: شركة",
    "License number is required for CONSULTANT customer type": "رقم الترخيص مطلوب لنوع العميل: استشاري",

    # Authorization
    "Unauthorized": "غير مصرح",
    "Forbidden": "محظور",
    "Insufficient permissions": "صلاحيات غير كافية",
    "Employee access required": "هذه العملية متاحة للموظفين فقط",
    "Customer access required": "هذه العملية متاحة للعملاء فقط",
    "You do not have access to this resource": "ليس لديك صلاحية الوصول إلى هذا المورد",

    # Not found
    "Not Found": "غير موجود",
    "Resource not found": "المورد غير موجود",
    "Customer not found": "العميل غير موجود",
    "Employee not found": "الموظف غير موجود",
    "Role not found": "الدور الوظيفي غير موجود",
    "Permission not found": "الصلاحية غير موجودة",
    "One or more permissions not found": "صلاحية واحدة أو أكثر غير موجودة",
    "Service not found": "الخدمة غير موجودة",
    "Request not found": "الطلب غير موجود",
    "Invoice not found": "الفاتورة غير موجودة",
    "Payment not found": "الدفعة غير موجودة",
    "Document not found": "المستند غير موجود",
    "Notification not found": "الإشعار غير موجود",

    # Roles / permissions
    "Role with this name already exists": "يوجد دور وظيفي بهذا الاسم بالفعل",
    "Permission already exists": "الصلاحية موجودة بالفعل",
    "Cannot rename the Admin role": "لا يمكن تغيير اسم دور المدير",
    "Cannot modify Admin role permissions": "لا يمكن تعديل صلاحيات دور المدير",
    "Cannot delete the Admin role": "لا يمكن حذف دور المدير",
    "Cannot delete role with assigned employees. Reassign them first.":
        "لا يمكن حذف دور وظيفي مرتبط بموظفين. أعد تعيينهم أولاً",
    "Cannot delete permission assigned to roles": "لا يمكن حذف صلاحية مرتبطة بأدوار وظيفية",

    # Requests
    "Invalid status transition": "انتقال غير مسموح في حالة الطلب",
    "Service is not available": "الخدمة غير متاحة",
    "Employee is not active": "الموظف غير نشط",
    "Cannot assign a closed request": "لا يمكن إسناد طلب مغلق",
    "Request was modified concurrently. Reload and try again.":
        "تم تعديل الطلب في نفس الوقت. أعد التحميل وحاول مرة أخرى",
    "Customers can only submit or cancel their requests": "يمكن للعميل تقديم طلبه أو إلغاؤه فقط",
    "Cannot delete service with existing requests": "لا يمكن حذف خدمة لها طلبات",
    "Cannot delete customer with existing requests": "لا يمكن حذف عميل لديه طلبات",
    "Cannot delete request with an invoice": "لا يمكن حذف طلب صادرة له فاتورة",
    "customer_id is required": "يجب تحديد العميل",

    # Billing
    "Invoice already exists for this request": "توجد فاتورة لهذا الطلب بالفعل",
    "Cannot pay a cancelled invoice": "لا يمكن سداد فاتورة ملغاة",
    "Invoice is already paid": "الفاتورة مدفوعة بالفعل",
    "Payment amount must be greater than zero": "يجب أن يكون مبلغ الدفعة أكبر من صفر",
    "Payment amount exceeds remaining balance": "مبلغ الدفعة يتجاوز الرصيد المتبقي",
    "Cannot delete invoice with payments": "لا يمكن حذف فاتورة لها مدفوعات",
    "Cannot delete a completed payment": "لا يمكن حذف دفعة مكتملة",
    "Discount cannot exceed subtotal": "لا يمكن أن يتجاوز الخصم المبلغ الفرعي",

    # Documents
    "File is too large": "حجم الملف كبير جداً",
    "File is empty": "الملف فارغ",
    "Only the uploader can delete this document": "يمكن لصاحب المستند فقط حذفه",

    # Confirmations
    "Logged out successfully": "تم تسجيل الخروج بنجاح",
    "If the email exists, a reset link has been sent":
        "إذا كان البريد الإلكتروني مسجلاً فسيتم إرسال رابط إعادة التعيين",
    "Password has been reset": "تمت إعادة تعيين كلمة المرور",
    "Password changed successfully": "تم تغيير كلمة المرور بنجاح",
    "Email verified successfully": "تم تفعيل البريد الإلكتروني بنجاح",
    "If the email exists, a verification link has been sent":
        "إذا كان البريد الإلكتروني مسجلاً فسيتم إرسال رابط التفعيل",
    "Role deleted": "تم حذف الدور الوظيفي",
    "Permission deleted": "تم حذف الصلاحية",
    "Customer deleted": "تم حذف العميل",
    "Employee deleted": "تم حذف الموظف",
    "Service deleted": "تم حذف الخدمة",
    "Request deleted": "تم حذف الطلب",
    "Invoice deleted": "تم حذف الفاتورة",
    "Payment deleted": "تم حذف الدفعة",
    "Document deleted": "تم حذف المستند",
    "Notification deleted": "تم حذف الإشعار",
    "All notifications marked as read": "تم تعليم جميع الإشعارات كمقروءة",

    # Reference data
    "Test type not found": "نوع الاختبار غير موجود",
    "Test type with this code already exists": "يوجد نوع اختبار بهذا الرمز بالفعل",
    "Cannot delete test type with sample types": "لا يمكن حذف نوع اختبار مرتبط بأنواع عينات",
    "Test type deleted": "تم حذف نوع الاختبار",
    "Sample type not found": "نوع العينة غير موجود",
    "Sample type with this code already exists": "يوجد نوع عينة بهذا الرمز بالفعل",
    "max_quantity must not be below min_quantity": "يجب ألا يقل الحد الأقصى للكمية عن الحد الأدنى",
    "Sample type deleted": "تم حذف نوع العينة",
    "Standard not found": "المواصفة غير موجودة",
    "Standard with this code already exists": "توجد مواصفة بهذا الرمز بالفعل",
    "Standard deleted": "تم حذف المواصفة",
    "Price list not found": "قائمة الأسعار غير موجودة",
    "Price list with this code already exists": "توجد قائمة أسعار بهذا الرمز بالفعل",
    "valid_to must be after valid_from": "يجب أن يكون تاريخ الانتهاء بعد تاريخ البدء",
    "No current price list for this category": "لا توجد قائمة أسعار سارية لهذه الفئة",
    "Price list deleted": "تم حذف قائمة الأسعار",
    "Price list item not found": "بند قائمة الأسعار غير موجود",
    "Item with this code already exists in this price list": "يوجد بند بهذا الرمز في قائمة الأسعار بالفعل",
    "Price list item deleted": "تم حذف بند قائمة الأسعار",
    "Distance rate not found": "تعريفة المسافة غير موجودة",
    "from_km must be less than to_km": "يجب أن تكون مسافة البداية أقل من مسافة النهاية",
    "Distance range overlaps with existing rate": "نطاق المسافة يتداخل مع تعريفة موجودة",
    "Distance cannot be negative": "لا يمكن أن تكون المسافة سالبة",
    "No distance rate covers this distance": "لا توجد تعريفة تغطي هذه المسافة",
    "Distance rate deleted": "تم حذف تعريفة المسافة",
    "Mixer type not found": "نوع الخلاطة غير موجود",
    "Mixer type with this code already exists": "يوجد نوع خلاطة بهذا الرمز بالفعل",
    "Mixer type deleted": "تم حذف نوع الخلاطة",
    "Lookup category not found": "فئة القائمة غير موجودة",
    "Lookup category with this code already exists": "توجد فئة قائمة بهذا الرمز بالفعل",
    "Cannot deactivate system category": "لا يمكن تعطيل فئة نظام",
    "Cannot delete system category": "لا يمكن حذف فئة نظام",
    "Lookup category deleted": "تم حذف فئة القائمة",
    "Lookup item not found": "عنصر القائمة غير موجود",
    "Item with this code already exists in this category": "يوجد عنصر بهذا الرمز في الفئة بالفعل",
    "Lookup item deleted": "تم حذف عنصر القائمة",

    # System settings
    "Setting not found": "الإعداد غير موجود",
    "Setting with this key already exists": "يوجد إعداد بهذا المفتاح بالفعل",
    "Value is required": "القيمة مطلوبة",
    "Value does not match setting type": "القيمة لا تتوافق مع نوع الإعداد",
    "Invalid validation rule": "قاعدة التحقق غير صالحة",
    "Value does not match validation rule": "القيمة لا تتوافق مع قاعدة التحقق",
    "Cannot delete system setting": "لا يمكن حذف إعداد نظام",
    "Setting deleted": "تم حذف الإعداد",

    # Generic
    "Bad Request": "طلب خاطئ",
    "Conflict": "تعارض",
    "Validation error": "خطأ في البيانات المدخلة",
    "Too many requests": "عدد كبير من الطلبات",
    "Internal Server Error": "خطأ في الخادم",
}


def translate(message: Optional[str]) -> str:
    """Return the Arabic text for an English message."""
    if not message:
        return FALLBACK_AR
    return MESSAGES_AR.get(message, FALLBACK_AR)


def translate_all(messages: Iterable[str]) -> List[str]:
    return [translate(m) for m in messages]
